import logging
from pathlib import Path
from typing import List, Optional
from eddit.config.models import PipelineConfig
from eddit.domain.errors import CutError
from eddit.infrastructure.ffmpeg import FFmpegAdapter, summarize_stderr
from eddit.infrastructure.files import unique_output_path

class SegmentCutter:
    """Extracts a time range of a source without re-encoding."""

    def __init__(self, ffmpeg: FFmpegAdapter, config: Optional[PipelineConfig] = None):
        self.ffmpeg = ffmpeg
        self.config = config or PipelineConfig()
        self.logger = logging.getLogger(__name__)

    def validate_range(self, start_time: float, end_time: float, source_duration: Optional[float] = None):
        """Rejects a range the engine could only fail on (or silently truncate)."""
        if start_time < 0:
            raise CutError(f"Start time {start_time}s is negative")
        if end_time <= start_time:
            raise CutError(f"End time {end_time}s must be after start time {start_time}s")
        if source_duration is not None:
            if start_time >= source_duration:
                raise CutError(f"Start time {start_time}s is beyond source duration {source_duration:.2f}s")
            if end_time > source_duration + self.config.bounds_tolerance:
                raise CutError(f"End time {end_time}s exceeds source duration {source_duration:.2f}s")

    def _build_command(self, source: Path, start_time: float, end_time: float, output_path: Path) -> List[str]:
        return [
            "-i", str(source),
            "-ss", str(start_time),
            "-t", str(end_time - start_time),
            "-c:v", "copy",
            "-c:a", "copy",
            "-avoid_negative_ts", "make_zero",
            str(output_path),
        ]

    def cut(
        self,
        source: Path,
        start_time: float,
        end_time: float,
        output_dir: Path,
        output_name: str,
        source_duration: Optional[float] = None,
    ) -> Path:
        self.validate_range(start_time, end_time, source_duration)

        output_path = unique_output_path(output_dir, output_name, self.config.output_extension)
        self.logger.info(f"CUT_START: {Path(source).name} [{start_time}s-{end_time}s] -> {output_path.name}")

        result = self.ffmpeg.run(self._build_command(source, start_time, end_time, output_path))
        if result.returncode != 0:
            output_path.unlink(missing_ok=True)
            message = summarize_stderr(result.stderr, result.returncode)
            self.logger.warning(f"CUT_FAIL: {output_path.name}: {message}")
            raise CutError(f"FFmpeg command failed: {message}", stderr=result.stderr)

        self.logger.info(f"CUT_END: {output_path.name}")
        return output_path
