import threading
import time
from datetime import datetime
from typing import List, Optional
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from eddit.domain.models import OperationResult
from eddit.ui.state import UIState

class Dashboard:
    """Renders the live batch display."""

    def __init__(self, state: UIState, console: Optional[Console] = None, refresh_interval: float = 0.25):
        self.state = state
        self.console = console or Console()
        self.refresh_interval = refresh_interval
        self._live: Optional[Live] = None
        self._refresh_thread: Optional[threading.Thread] = None
        self._stop_refresh = threading.Event()
        self._ui_lock = threading.Lock()

    def format_time(self, seconds: float) -> str:
        """Format seconds to human readable time"""
        if seconds < 60:
            return f"{int(seconds):02d}s"
        elif seconds < 3600:
            return f"{int(seconds / 60):02d}m {int(seconds % 60):02d}s"
        else:
            return f"{int(seconds / 3600)}h {int((seconds % 3600) / 60):02d}m"

    def _generate_status_panel(self) -> Panel:
        with self.state._lock:
            if self.state.finished:
                status, color = "FINISHED", "cyan"
            elif self.state.batch_start_time is None:
                status, color = "WAITING", "yellow"
            else:
                status, color = "ACTIVE", "green"

            elapsed = ""
            if self.state.batch_start_time:
                elapsed = self.format_time((datetime.now() - self.state.batch_start_time).total_seconds())

            lines = [
                f"[dim]Status:[/] [bold {color}]{status}[/] [dim]Elapsed:[/] {elapsed or '-'}",
                f"[dim]Source:[/] {self.state.source.name if self.state.source else '-'}",
                (
                    f"[dim]Segments:[/] {self.state.total_segments} | "
                    f"[dim]Done:[/] {self.state.completed_count} | "
                    f"[dim]Failed:[/] {self.state.failed_count}"
                ),
            ]
        return Panel("\n".join(lines), title="BATCH STATUS", border_style="cyan")

    def _generate_progress_panel(self) -> Panel:
        with self.state._lock:
            overall = self.state.overall_percent
            eta = self.state.estimated_remaining_seconds
            eta_str = self.format_time(eta) if eta is not None else "calculating..."

            rows = Table(show_header=False, box=None, padding=(0, 1))
            rows.add_column("Label", style="dim", min_width=12, no_wrap=True)
            rows.add_column("Bar", ratio=1)
            rows.add_column("Pct", width=6, justify="right")
            rows.add_row("Overall", ProgressBar(total=100, completed=overall), f"{overall:.0f}%")

            if self.state.current_index is not None and not self.state.finished:
                label = f"#{self.state.current_index + 1} {self.state.current_status.value if self.state.current_status else ''}"
                rows.add_row(label, ProgressBar(total=100, completed=self.state.current_progress), f"{self.state.current_progress:.0f}%")
            if self.state.merge_progress is not None and not self.state.finished:
                rows.add_row("intro merge", ProgressBar(total=100, completed=self.state.merge_progress), f"{self.state.merge_progress:.0f}%")

        return Panel(Group(rows, f"[dim]ETA:[/] {eta_str}"), title="PROGRESS", border_style="green")

    def _generate_recent_panel(self) -> Panel:
        with self.state._lock:
            messages = list(self.state.recent_messages)
        return Panel("\n".join(messages) or "[dim]nothing yet[/]", title="RECENT", border_style="white")

    def create_display(self) -> Group:
        return Group(
            self._generate_status_panel(),
            self._generate_progress_panel(),
            self._generate_recent_panel(),
        )

    def results_table(self, results: List[OperationResult]) -> Table:
        table = Table(title="Results")
        table.add_column("#", justify="right")
        table.add_column("Status")
        table.add_column("Output", overflow="fold")
        table.add_column("Error", overflow="fold")
        for i, result in enumerate(results, start=1):
            status = "[green]ok[/]" if result.success else "[red]failed[/]"
            output = str(result.output_path) if result.output_path else "-"
            table.add_row(str(i), status, output, result.error_message or "")
        return table

    def _refresh_loop(self):
        """Background thread to update Live display."""
        while not self._stop_refresh.is_set():
            if self._live:
                display = self.create_display()
                with self._ui_lock:
                    self._live.update(display)
            time.sleep(self.refresh_interval)

    def start(self):
        """Starts the Live display and refresh thread."""
        self._live = Live(self.create_display(), console=self.console, refresh_per_second=10)
        self._live.start()
        self._stop_refresh.clear()
        self._refresh_thread = threading.Thread(target=self._refresh_loop, daemon=True)
        self._refresh_thread.start()
        return self

    def stop(self):
        """Stops the Live display and refresh thread."""
        self._stop_refresh.set()
        if self._refresh_thread:
            self._refresh_thread.join(timeout=1.0)
        if self._live:
            with self._ui_lock:
                self._live.update(self.create_display())
            self._live.stop()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
