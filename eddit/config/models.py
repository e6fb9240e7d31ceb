from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

class EngineConfig(BaseModel):
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    bundled_dir: Optional[Path] = None
    crf_codecs: List[str] = Field(default_factory=lambda: ["libx264", "libx265"])
    fallback_codec: str = "libx264"
    fallback_preset: str = "medium"
    fallback_crf: int = Field(default=23, ge=0, le=51)
    audio_codec: str = "aac"
    audio_bitrate: str = "128k"

class ProgressConfig(BaseModel):
    poll_interval: float = Field(default=0.2, gt=0)
    file_wait_timeout: float = Field(default=5.0, ge=0)

class PipelineConfig(BaseModel):
    output_extension: str = ".mp4"
    scratch_dir: Optional[Path] = None
    validate_bounds: bool = True
    bounds_tolerance: float = Field(default=0.05, ge=0)
    keep_intermediates: bool = False
    debug: bool = False

    @field_validator('output_extension')
    @classmethod
    def validate_extension(cls, v: str) -> str:
        if not v.startswith(".") or len(v) < 2:
            raise ValueError(f"Invalid output extension {v!r}. Must look like '.mp4'.")
        return v.lower()

class AppConfig(BaseModel):
    engine: EngineConfig = Field(default_factory=EngineConfig)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
