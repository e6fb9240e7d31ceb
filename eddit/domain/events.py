from typing import List, Optional
from pathlib import Path
from pydantic import BaseModel, Field
from .models import OperationResult, SegmentStatus

class Event(BaseModel):
    """Base class for all domain events."""
    pass

class BatchStarted(Event):
    source: Path
    output_dir: Path
    total: int

class SegmentProgress(Event):
    index: int
    total: int
    status: SegmentStatus
    progress: float = Field(ge=0, le=100)
    estimated_remaining_seconds: Optional[float] = None

class MergeProgressUpdated(Event):
    intro_path: Path
    video_path: Path
    progress_percent: float = Field(ge=0, le=100)

class BatchFinished(Event):
    results: List[OperationResult]

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded
