import re
import threading
import time
import logging
from pathlib import Path
from typing import Callable, Optional

OUT_TIME_RE = re.compile(r"^out_time_ms=(\d+)\s*$", re.MULTILINE)

def parse_out_time_seconds(text: str) -> Optional[float]:
    """Returns the latest ``out_time_ms`` value (microseconds, despite the name) in seconds."""
    matches = OUT_TIME_RE.findall(text)
    if not matches:
        return None
    return int(matches[-1]) / 1_000_000

def progress_percent(elapsed: float, total_duration: float) -> float:
    if total_duration <= 0:
        return 0.0
    return max(0.0, min(elapsed / total_duration * 100.0, 100.0))

class ProgressFileMonitor:
    """Polls an ffmpeg ``-progress`` file in a background thread.

    The monitor belongs to a single engine run: ``stop()`` (or leaving the
    ``with`` block) ends it, and it always reports a final 100% before exiting.
    Reported values never decrease.
    """

    def __init__(
        self,
        progress_path: Path,
        total_duration: float,
        on_progress: Callable[[float], None],
        poll_interval: float = 0.2,
        file_wait_timeout: float = 5.0,
    ):
        self.progress_path = progress_path
        self.total_duration = total_duration
        self.on_progress = on_progress
        self.poll_interval = poll_interval
        self.file_wait_timeout = file_wait_timeout
        self.logger = logging.getLogger(__name__)
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_percent = 0.0

    @property
    def last_percent(self) -> float:
        return self._last_percent

    def _emit(self, percent: float):
        try:
            self.on_progress(percent)
        except Exception as e:
            self.logger.debug(f"Progress sink failed: {e}")

    def _wait_for_file(self) -> bool:
        """Waits (bounded) for the engine to create the progress file."""
        deadline = time.monotonic() + self.file_wait_timeout
        while not self.progress_path.exists():
            if self._stop_event.is_set() or time.monotonic() >= deadline:
                return self.progress_path.exists()
            self._stop_event.wait(min(self.poll_interval, 0.05))
        return True

    def _read_percent(self) -> Optional[float]:
        try:
            text = self.progress_path.read_text(errors="replace")
        except FileNotFoundError:
            return None
        elapsed = parse_out_time_seconds(text)
        if elapsed is None:
            return None
        return progress_percent(elapsed, self.total_duration)

    def poll_once(self) -> Optional[float]:
        """Reads the file once and reports a new value if progress advanced."""
        percent = self._read_percent()
        if percent is not None and percent > self._last_percent:
            self._last_percent = percent
            self._emit(percent)
        return percent

    def _poll(self):
        try:
            if self._wait_for_file():
                while not self._stop_event.is_set():
                    if not self.progress_path.exists():
                        break
                    self.poll_once()
                    self._stop_event.wait(self.poll_interval)
            else:
                self.logger.debug(f"Progress file {self.progress_path} never appeared")
        finally:
            self._last_percent = 100.0
            self._emit(100.0)

    def start(self):
        """Starts the monitoring thread."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll, name="progress-monitor", daemon=True)
        self._thread.start()

    def stop(self):
        """Stops the monitoring thread and waits for its final notification."""
        self._stop_event.set()
        if self._thread:
            self._thread.join()
            self._thread = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
