import re
import time
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch
from eddit.domain.errors import MergeError, ProbeError
from eddit.domain.events import MergeProgressUpdated
from eddit.infrastructure.event_bus import EventBus
from eddit.infrastructure.ffmpeg import FFmpegAdapter
from eddit.infrastructure.ffprobe import FFprobeAdapter
from eddit.pipeline.merger import CONCAT_FILTER, IntroMerger

pytestmark = pytest.mark.usefixtures("fake_engine")

def is_copy_attempt(cmd):
    return "concat" in cmd and "-filter_complex" not in cmd

def scratch_files(app_config):
    scratch = app_config.pipeline.scratch_dir
    return list(scratch.iterdir()) if scratch.exists() else []

class FakeEngine:
    """Stands in for subprocess.run; records commands and plays scripted outcomes."""

    def __init__(self, completed, copy_rc=0, reencode_rc=0, progress_us=(), step=0.03):
        self.completed = completed
        self.copy_rc = copy_rc
        self.reencode_rc = reencode_rc
        self.progress_us = progress_us
        self.step = step
        self.commands = []
        self.concat_lists = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        copy = is_copy_attempt(cmd)
        if copy:
            concat_list = Path(cmd[cmd.index("-i") + 1])
            self.concat_lists.append((concat_list, concat_list.read_text()))
        if "-progress" in cmd:
            progress = Path(cmd[cmd.index("-progress") + 1])
            with open(progress, "w") as f:
                for us in self.progress_us:
                    f.write(f"out_time_ms={us}\nprogress=continue\n")
                    f.flush()
                    time.sleep(self.step)
                f.write("progress=end\n")
        rc = self.copy_rc if copy else self.reencode_rc
        if rc == 0:
            Path(cmd[-1]).write_bytes(b"merged")
        else:
            Path(cmd[-1]).write_bytes(b"partial")
        stderr = "Non-monotonous DTS\ncopy attempt failed" if copy else "Error reinitializing filters!\nreencode attempt failed"
        return self.completed(returncode=rc, stderr=stderr if rc else "")

@pytest.fixture
def probe():
    adapter = MagicMock(spec=FFprobeAdapter)
    adapter.get_duration.side_effect = lambda path: {"intro.mp4": 2.0, "lecture.mp4": 8.0}[Path(path).name]
    return adapter

@pytest.fixture
def bus_events():
    bus = EventBus()
    seen = []
    bus.subscribe(MergeProgressUpdated, lambda e: seen.append(e.progress_percent))
    return bus, seen

@pytest.fixture
def make_merger(app_config, probe):
    def _make(bus=None):
        return IntroMerger(FFmpegAdapter(app_config.engine), probe, app_config, event_bus=bus)
    return _make

class TestSynchronousMerge:
    def test_copy_success_runs_once(self, make_merger, media_files, tmp_path, completed, app_config):
        source, intro = media_files
        engine = FakeEngine(completed)
        with patch("subprocess.run", side_effect=engine):
            output = make_merger().merge(intro, source, tmp_path)

        assert len(engine.commands) == 1
        cmd = engine.commands[0]
        assert cmd[cmd.index("-f") + 1] == "concat"
        assert cmd[cmd.index("-safe") + 1] == "0"
        assert cmd[cmd.index("-c") + 1] == "copy"
        assert "-progress" not in cmd
        assert output.exists()
        assert re.fullmatch(r"merged_intro_lecture_[0-9a-f]{8}\.mp4", output.name)
        assert output.parent == tmp_path

        list_path, content = engine.concat_lists[0]
        assert content.splitlines() == [f"file '{intro.resolve()}'", f"file '{source.resolve()}'"]
        assert not list_path.exists()
        assert scratch_files(app_config) == []

    def test_copy_failure_falls_back_to_reencode_once(self, make_merger, media_files, tmp_path, completed, app_config):
        source, intro = media_files
        engine = FakeEngine(completed, copy_rc=1)
        with patch("subprocess.run", side_effect=engine):
            output = make_merger().merge(intro, source, tmp_path)

        assert len(engine.commands) == 2
        reencode = engine.commands[1]
        assert reencode[reencode.index("-filter_complex") + 1] == CONCAT_FILTER
        assert [reencode[i + 1] for i, a in enumerate(reencode) if a == "-i"] == [str(intro), str(source)]
        assert reencode[reencode.index("-c:v") + 1] == "libx264"
        assert reencode[reencode.index("-preset") + 1] == "medium"
        assert reencode[reencode.index("-crf") + 1] == "23"
        assert reencode[reencode.index("-c:a") + 1] == "aac"
        assert reencode[reencode.index("-b:a") + 1] == "128k"
        assert output.read_bytes() == b"merged"
        assert scratch_files(app_config) == []

    def test_both_attempts_fail_reports_reencode_error(self, make_merger, media_files, tmp_path, completed, app_config):
        source, intro = media_files
        engine = FakeEngine(completed, copy_rc=1, reencode_rc=1)
        with patch("subprocess.run", side_effect=engine):
            with pytest.raises(MergeError) as exc:
                make_merger().merge(intro, source, tmp_path)

        assert len(engine.commands) == 2
        assert "reencode attempt failed" in str(exc.value)
        assert "copy attempt failed" not in str(exc.value)
        assert "Error reinitializing filters!" in exc.value.stderr
        assert list(tmp_path.glob("merged_*")) == []
        assert scratch_files(app_config) == []

    def test_concat_list_quotes_are_escaped(self, make_merger, tmp_path, completed):
        intro = tmp_path / "it's intro.mp4"
        intro.write_bytes(b"i")
        video = tmp_path / "main.mp4"
        video.write_bytes(b"v")
        engine = FakeEngine(completed)
        with patch("subprocess.run", side_effect=engine):
            make_merger().merge(intro, video, tmp_path)
        first_line = engine.concat_lists[0][1].splitlines()[0]
        assert first_line == f"file '{str(intro.resolve())[:-len(intro.name)]}it'\\''s intro.mp4'"

    def test_output_names_are_unique(self, make_merger, media_files, tmp_path, completed):
        source, intro = media_files
        merger = make_merger()
        a = merger.output_path_for(intro, source, tmp_path)
        b = merger.output_path_for(intro, source, tmp_path)
        assert a != b

    def test_output_dir_given_as_file_path(self, make_merger, media_files, tmp_path):
        source, intro = media_files
        out = make_merger().output_path_for(intro, source, tmp_path / "result.mp4")
        assert out.parent == tmp_path

class TestProgressMerge:
    def test_progress_is_monotonic_and_ends_at_100(self, make_merger, media_files, tmp_path, completed, bus_events, app_config):
        source, intro = media_files
        bus, seen = bus_events
        engine = FakeEngine(completed, progress_us=(1_000_000, 2_500_000, 5_000_000, 10_000_000))
        with patch("subprocess.run", side_effect=engine):
            output = make_merger(bus).merge_with_progress(intro, source, tmp_path)

        assert output.exists()
        assert "-progress" in engine.commands[0]
        assert seen, "no progress published"
        assert seen == sorted(seen)
        assert seen[-1] == 100.0
        assert all(0 <= p <= 100 for p in seen)
        assert scratch_files(app_config) == []

    def test_fallback_restart_never_lowers_progress(self, make_merger, media_files, tmp_path, completed, bus_events, app_config):
        source, intro = media_files
        bus, seen = bus_events
        engine = FakeEngine(completed, copy_rc=1, progress_us=(3_000_000, 6_000_000))
        with patch("subprocess.run", side_effect=engine):
            make_merger(bus).merge_with_progress(intro, source, tmp_path)

        assert len(engine.commands) == 2
        assert all("-progress" in cmd for cmd in engine.commands)
        assert seen == sorted(seen)
        assert seen[-1] == 100.0
        assert scratch_files(app_config) == []

    def test_failure_still_cleans_up_and_finishes_progress(self, make_merger, media_files, tmp_path, completed, bus_events, app_config):
        source, intro = media_files
        bus, seen = bus_events
        engine = FakeEngine(completed, copy_rc=1, reencode_rc=1, progress_us=(1_000_000,))
        with patch("subprocess.run", side_effect=engine):
            with pytest.raises(MergeError):
                make_merger(bus).merge_with_progress(intro, source, tmp_path)

        assert seen[-1] == 100.0
        assert scratch_files(app_config) == []

    def test_probe_failure_aborts_before_engine(self, app_config, media_files, tmp_path):
        source, intro = media_files
        probe = MagicMock(spec=FFprobeAdapter)
        probe.get_duration.side_effect = ProbeError("No video stream found in intro.mp4")
        merger = IntroMerger(FFmpegAdapter(app_config.engine), probe, app_config, event_bus=EventBus())

        with patch("subprocess.run") as mock_run:
            with pytest.raises(ProbeError):
                merger.merge_with_progress(intro, source, tmp_path)
        mock_run.assert_not_called()
        assert scratch_files(app_config) == []

    def test_progress_uses_summed_durations(self, make_merger, media_files, tmp_path, completed, bus_events):
        source, intro = media_files
        bus, seen = bus_events
        # 5s of output over 2s intro + 8s main = 50%
        engine = FakeEngine(completed, progress_us=(5_000_000,), step=0.2)
        with patch("subprocess.run", side_effect=engine):
            make_merger(bus).merge_with_progress(intro, source, tmp_path)
        assert 50.0 in seen
