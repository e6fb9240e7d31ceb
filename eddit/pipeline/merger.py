import logging
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional
from eddit.config.models import AppConfig
from eddit.domain.errors import MergeError
from eddit.domain.events import MergeProgressUpdated
from eddit.infrastructure.event_bus import EventBus
from eddit.infrastructure.ffmpeg import FFmpegAdapter, summarize_stderr
from eddit.infrastructure.ffprobe import FFprobeAdapter
from eddit.infrastructure.files import resolve_directory, safe_unlink
from eddit.infrastructure.housekeeping import CONCAT_PREFIX, PROGRESS_PREFIX
from eddit.infrastructure.progress_monitor import ProgressFileMonitor

CONCAT_FILTER = "[0:v][0:a][1:v][1:a]concat=n=2:v=1:a=1[outv][outa]"

def _concat_entry(path: Path) -> str:
    # concat demuxer quoting: close the quote, emit an escaped quote, reopen
    escaped = str(Path(path).resolve()).replace("'", "'\\''")
    return f"file '{escaped}'"

class IntroMerger:
    """Prepends an intro clip to a video.

    Each merge tries a stream-copy concatenation first and falls back, once, to a
    filter-graph re-encode. The progress variant additionally streams the
    engine's elapsed output time to the event bus.
    """

    def __init__(
        self,
        ffmpeg: FFmpegAdapter,
        ffprobe: FFprobeAdapter,
        config: Optional[AppConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe
        self.config = config or AppConfig()
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    def _scratch_file(self, prefix: str) -> Path:
        scratch_dir = self.config.pipeline.scratch_dir or Path(tempfile.gettempdir())
        scratch_dir.mkdir(parents=True, exist_ok=True)
        return scratch_dir / f"{prefix}{uuid.uuid4().hex}.txt"

    def output_path_for(self, intro_path: Path, video_path: Path, output_dir: Path) -> Path:
        token = uuid.uuid4().hex[:8]
        name = f"merged_{Path(intro_path).stem}_{Path(video_path).stem}_{token}{self.config.pipeline.output_extension}"
        return resolve_directory(output_dir) / name

    def _build_copy_command(self, concat_list: Path, output_path: Path, progress_path: Optional[Path]) -> List[str]:
        cmd = ["-f", "concat", "-safe", "0", "-i", str(concat_list)]
        if progress_path is not None:
            cmd.extend(["-progress", str(progress_path), "-nostats"])
        cmd.extend(["-c", "copy", str(output_path)])
        return cmd

    def _build_reencode_command(self, intro_path: Path, video_path: Path, output_path: Path, progress_path: Optional[Path]) -> List[str]:
        engine = self.config.engine
        cmd = [
            "-i", str(intro_path),
            "-i", str(video_path),
            "-filter_complex", CONCAT_FILTER,
            "-map", "[outv]",
            "-map", "[outa]",
        ]
        if progress_path is not None:
            cmd.extend(["-progress", str(progress_path), "-nostats"])
        cmd.extend([
            "-c:v", engine.fallback_codec,
            "-preset", engine.fallback_preset,
            "-crf", str(engine.fallback_crf),
            "-c:a", engine.audio_codec,
            "-b:a", engine.audio_bitrate,
            str(output_path),
        ])
        return cmd

    def _merge(self, intro_path: Path, video_path: Path, output_dir: Path, progress_path: Optional[Path]) -> Path:
        """Runs the copy -> re-encode state machine. Caller owns ``progress_path`` cleanup."""
        output_path = self.output_path_for(intro_path, video_path, output_dir)
        concat_list = self._scratch_file(CONCAT_PREFIX)

        try:
            concat_list.write_text(f"{_concat_entry(intro_path)}\n{_concat_entry(video_path)}\n")
            self.logger.info(f"MERGE_START: {Path(intro_path).name} + {Path(video_path).name} -> {output_path.name}")

            result = self.ffmpeg.run(self._build_copy_command(concat_list, output_path, progress_path))
            if result.returncode == 0:
                self.logger.info(f"MERGE_END: {output_path.name} (stream copy)")
                return output_path

            self.logger.info(
                f"MERGE_FALLBACK: stream copy failed ({summarize_stderr(result.stderr, result.returncode)}), re-encoding"
            )
            output_path.unlink(missing_ok=True)

            result = self.ffmpeg.run(self._build_reencode_command(intro_path, video_path, output_path, progress_path))
            if result.returncode == 0:
                self.logger.info(f"MERGE_END: {output_path.name} (re-encoded)")
                return output_path

            output_path.unlink(missing_ok=True)
            message = summarize_stderr(result.stderr, result.returncode)
            self.logger.warning(f"MERGE_FAIL: {output_path.name}: {message}")
            raise MergeError(f"FFmpeg command failed during concatenation: {message}", stderr=result.stderr)
        finally:
            safe_unlink(concat_list)

    def merge(self, intro_path: Path, video_path: Path, output_dir: Path) -> Path:
        return self._merge(intro_path, video_path, output_dir, progress_path=None)

    def _publish(self, intro_path: Path, video_path: Path, percent: float):
        if self.event_bus is not None:
            self.event_bus.publish(MergeProgressUpdated(
                intro_path=intro_path, video_path=video_path, progress_percent=percent
            ))

    def merge_with_progress(self, intro_path: Path, video_path: Path, output_dir: Path) -> Path:
        # A ProbeError here fails this merge only
        total_duration = self.ffprobe.get_duration(intro_path) + self.ffprobe.get_duration(video_path)
        progress_path = self._scratch_file(PROGRESS_PREFIX)

        monitor = ProgressFileMonitor(
            progress_path,
            total_duration,
            on_progress=lambda percent: self._publish(intro_path, video_path, percent),
            poll_interval=self.config.progress.poll_interval,
            file_wait_timeout=self.config.progress.file_wait_timeout,
        )
        try:
            with monitor:
                return self._merge(intro_path, video_path, output_dir, progress_path)
        finally:
            safe_unlink(progress_path)
