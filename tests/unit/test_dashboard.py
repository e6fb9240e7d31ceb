from pathlib import Path

from rich.console import Console, Group
from rich.table import Table

from eddit.domain.models import OperationResult, SegmentStatus
from eddit.ui.dashboard import Dashboard
from eddit.ui.state import UIState

def test_dashboard_initialization():
    """Test that Dashboard can be initialized with UIState."""
    state = UIState()
    dashboard = Dashboard(state)
    assert dashboard.state is state

def test_dashboard_context_manager():
    dashboard = Dashboard(UIState())
    assert hasattr(dashboard, '__enter__')
    assert hasattr(dashboard, '__exit__')

def test_dashboard_format_time():
    dashboard = Dashboard(UIState())
    assert dashboard.format_time(59) == "59s"
    assert dashboard.format_time(61) == "01m 01s"
    assert dashboard.format_time(3661) == "1h 01m"

def test_dashboard_renders_active_batch():
    state = UIState()
    state.start_batch(Path("talk.mp4"), Path("out"), 3)
    state.update_segment(1, SegmentStatus.ADDING_INTRO, 0, None)
    state.update_merge(42.0)

    console = Console(record=True, width=100)
    dashboard = Dashboard(state, console=console)
    display = dashboard.create_display()
    assert isinstance(display, Group)

    console.print(display)
    text = console.export_text()
    assert "talk.mp4" in text
    assert "#2 adding-intro" in text
    assert "intro merge" in text
    assert "42%" in text

def test_dashboard_results_table():
    dashboard = Dashboard(UIState())
    results = [
        OperationResult.ok(Path("out/a.mp4")),
        OperationResult.failed("Failed to add intro: bad intro", output_path=Path("out/b.mp4")),
    ]
    table = dashboard.results_table(results)
    assert isinstance(table, Table)
    assert table.row_count == 2

    console = Console(record=True, width=120)
    console.print(table)
    text = console.export_text()
    assert "failed" in text
    assert "bad intro" in text

def test_dashboard_start_stop():
    console = Console(record=True, width=80, force_terminal=False)
    dashboard = Dashboard(UIState(), console=console, refresh_interval=0.01)
    with dashboard:
        pass
    assert "BATCH STATUS" in console.export_text()
