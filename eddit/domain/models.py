from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

class SegmentStatus(str, Enum):
    CUTTING = "cutting"
    ADDING_INTRO = "adding-intro"
    COMPRESSING = "compressing"
    COMPLETED = "completed"
    FAILED = "failed"

class SegmentRequest(BaseModel):
    """One time range of the source to extract, optionally prefixed with an intro."""
    model_config = ConfigDict(frozen=True)

    start_time: float = Field(ge=0)
    end_time: float
    output_name: str = Field(min_length=1)
    intro_path: Optional[Path] = None

class MediaMetadata(BaseModel):
    duration: float = Field(gt=0)
    width: int = Field(gt=0)
    height: int = Field(gt=0)
    framerate: float = Field(gt=0)
    codec: str

class CompressionProfile(BaseModel):
    quality: int = Field(ge=0, le=51)
    preset: str = Field(min_length=1)
    codec: str = Field(min_length=1)

class OperationResult(BaseModel):
    success: bool
    output_path: Optional[Path] = None
    error_message: Optional[str] = None

    @classmethod
    def ok(cls, output_path: Path) -> "OperationResult":
        return cls(success=True, output_path=output_path)

    @classmethod
    def failed(cls, error_message: str, output_path: Optional[Path] = None) -> "OperationResult":
        return cls(success=False, output_path=output_path, error_message=error_message)
