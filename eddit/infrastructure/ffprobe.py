import subprocess
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from pydantic import ValidationError
from eddit.config.models import EngineConfig
from eddit.domain.errors import EngineLaunchError, ProbeError
from eddit.domain.models import MediaMetadata
from eddit.infrastructure.ffmpeg import _CREATION_FLAGS, find_engine_binary

class FFprobeAdapter:
    """Wrapper around ffprobe to extract stream information."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(__name__)
        self._binary: Optional[str] = None

    @property
    def binary(self) -> str:
        if self._binary is None:
            self._binary = find_engine_binary("ffprobe", self.config.ffprobe_path, self.config.bundled_dir)
        return self._binary

    def _probe_json(self, file_path: Path) -> Dict[str, Any]:
        """Executes ffprobe and parses JSON output."""
        cmd = [
            self.binary,
            "-v", "quiet",
            "-print_format", "json",
            "-show_format",
            "-show_streams",
            str(file_path)
        ]

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, errors="replace", creationflags=_CREATION_FLAGS)
        except OSError as e:
            raise EngineLaunchError(f"Could not start {cmd[0]}: {e}") from e
        if result.returncode != 0:
            raise ProbeError(f"ffprobe failed for {file_path} (code {result.returncode})", stderr=result.stderr)

        try:
            data = json.loads(result.stdout)
        except (json.JSONDecodeError, TypeError) as e:
            raise ProbeError(f"ffprobe returned unparseable output for {file_path}: {e}") from e
        if not isinstance(data, dict):
            raise ProbeError(f"ffprobe returned unexpected output for {file_path}")
        return data

    def get_metadata(self, file_path: Path) -> MediaMetadata:
        data = self._probe_json(file_path)

        streams = data.get("streams") or []
        fmt = data.get("format") or {}
        if not isinstance(streams, list) or not isinstance(fmt, dict):
            raise ProbeError(f"ffprobe returned unexpected output for {file_path}")

        video_stream = next(
            (s for s in streams if isinstance(s, dict) and s.get("codec_type") == "video"), None
        )
        if not video_stream:
            raise ProbeError(f"No video stream found in {file_path}")

        # Container duration is more reliable than the per-stream value
        duration = fmt.get("duration")
        if duration is None:
            raise ProbeError(f"No duration found in {file_path}")
        for key in ("width", "height", "r_frame_rate"):
            if video_stream.get(key) is None:
                raise ProbeError(f"No {key} found in {file_path}")

        fps_str = str(video_stream["r_frame_rate"])
        parts = fps_str.split("/")
        if len(parts) != 2:
            raise ProbeError(f"Invalid frame rate format {fps_str!r} in {file_path}")
        try:
            num, den = map(float, parts)
            framerate = num / den
            metadata = MediaMetadata(
                duration=float(duration),
                width=int(video_stream["width"]),
                height=int(video_stream["height"]),
                framerate=framerate,
                codec=video_stream.get("codec_name", "unknown"),
            )
        except (ValueError, ZeroDivisionError, ValidationError) as e:
            raise ProbeError(f"Invalid stream information in {file_path}: {e}") from e

        self.logger.debug(
            f"PROBE: {Path(file_path).name} {metadata.width}x{metadata.height} "
            f"{metadata.framerate:.3f}fps {metadata.duration:.2f}s {metadata.codec}"
        )
        return metadata

    def get_duration(self, file_path: Path) -> float:
        return self.get_metadata(file_path).duration
