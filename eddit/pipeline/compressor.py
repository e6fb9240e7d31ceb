import logging
from pathlib import Path
from typing import List, Optional
from eddit.config.models import AppConfig
from eddit.domain.errors import CompressError
from eddit.domain.models import CompressionProfile
from eddit.infrastructure.ffmpeg import FFmpegAdapter, summarize_stderr
from eddit.infrastructure.files import unique_output_path

# (upper quality bound, bitrate) for codecs without CRF support; lower quality = higher bitrate
BITRATE_BANDS = [
    (10, "8M"),
    (20, "5M"),
    (30, "2M"),
]
LOWEST_BITRATE = "1M"

def bitrate_for_quality(quality: int) -> str:
    for upper, bitrate in BITRATE_BANDS:
        if quality <= upper:
            return bitrate
    return LOWEST_BITRATE

class Compressor:
    """Re-encodes a file according to a complete CompressionProfile."""

    def __init__(self, ffmpeg: FFmpegAdapter, config: Optional[AppConfig] = None):
        self.ffmpeg = ffmpeg
        self.config = config or AppConfig()
        self.logger = logging.getLogger(__name__)

    def supports_crf(self, codec: str) -> bool:
        return codec in self.config.engine.crf_codecs

    def _build_command(self, source: Path, profile: CompressionProfile, output_path: Path) -> List[str]:
        """Constructs the ffmpeg command line arguments."""
        cmd = [
            "-i", str(source),
            "-c:v", profile.codec,
            "-preset", profile.preset,
        ]

        if self.supports_crf(profile.codec):
            cmd.extend(["-crf", str(profile.quality)])
        else:
            cmd.extend(["-b:v", bitrate_for_quality(profile.quality)])

        cmd.extend([
            "-c:a", self.config.engine.audio_codec,
            "-b:a", self.config.engine.audio_bitrate,
            str(output_path),
        ])
        return cmd

    def compress(self, source: Path, output_dir: Path, profile: CompressionProfile) -> Path:
        """Executes the compression process."""
        source = Path(source)
        output_path = unique_output_path(output_dir, f"{source.stem}_compressed", self.config.pipeline.output_extension)
        self.logger.info(
            f"COMPRESS_START: {source.name} -> {output_path.name} "
            f"(codec={profile.codec}, preset={profile.preset}, quality={profile.quality})"
        )

        result = self.ffmpeg.run(self._build_command(source, profile, output_path))
        if result.returncode != 0:
            output_path.unlink(missing_ok=True)
            message = summarize_stderr(result.stderr, result.returncode)
            self.logger.warning(f"COMPRESS_FAIL: {source.name}: {message}")
            raise CompressError(f"FFmpeg compression failed for {source}: {message}", stderr=result.stderr)

        self.logger.info(f"COMPRESS_END: {output_path.name}")
        return output_path
