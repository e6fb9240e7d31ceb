import threading
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from eddit.domain.models import OperationResult, SegmentStatus

class UIState:
    """Thread-safe state manager for the live batch display."""

    def __init__(self):
        self._lock = threading.RLock()

        # Batch
        self.source: Optional[Path] = None
        self.output_dir: Optional[Path] = None
        self.total_segments = 0
        self.batch_start_time: Optional[datetime] = None
        self.finished = False

        # Current segment
        self.current_index: Optional[int] = None
        self.current_status: Optional[SegmentStatus] = None
        self.current_progress = 0.0
        self.merge_progress: Optional[float] = None
        self.estimated_remaining_seconds: Optional[float] = None

        # Counters
        self.completed_count = 0
        self.failed_count = 0

        self.results: List[OperationResult] = []
        self.recent_messages = deque(maxlen=5)

    @property
    def processed_count(self) -> int:
        with self._lock:
            return self.completed_count + self.failed_count

    @property
    def overall_percent(self) -> float:
        with self._lock:
            if self.total_segments == 0:
                return 0.0
            done = self.processed_count
            if self.current_status not in (None, SegmentStatus.COMPLETED, SegmentStatus.FAILED):
                return (done + self.current_progress / 100.0) / self.total_segments * 100.0
            return done / self.total_segments * 100.0

    def start_batch(self, source: Path, output_dir: Path, total: int):
        with self._lock:
            self.source = source
            self.output_dir = output_dir
            self.total_segments = total
            self.batch_start_time = datetime.now()
            self.finished = False
            self.completed_count = 0
            self.failed_count = 0
            self.results = []

    def update_segment(self, index: int, status: SegmentStatus, progress: float, eta: Optional[float]):
        with self._lock:
            if index != self.current_index:
                self.merge_progress = None
            self.current_index = index
            self.current_status = status
            self.current_progress = progress
            if status == SegmentStatus.COMPLETED:
                self.completed_count += 1
                self.estimated_remaining_seconds = eta
                self.recent_messages.appendleft(f"segment {index + 1} completed")
            elif status == SegmentStatus.FAILED:
                self.failed_count += 1
                self.recent_messages.appendleft(f"segment {index + 1} failed")

    def update_merge(self, percent: float):
        with self._lock:
            self.merge_progress = percent

    def finish(self, results: List[OperationResult]):
        with self._lock:
            self.results = list(results)
            self.finished = True
            self.current_status = None
            self.estimated_remaining_seconds = 0.0
