import logging
import os
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import List, Optional
from eddit.config.models import EngineConfig
from eddit.domain.errors import EngineLaunchError, EngineNotFoundError

# Keeps a console window from flashing up for every call on Windows
_CREATION_FLAGS = getattr(subprocess, "CREATE_NO_WINDOW", 0) if os.name == "nt" else 0

def find_engine_binary(name: str, configured: str, bundled_dir: Optional[Path] = None) -> str:
    """Resolves an engine executable.

    Order: <bundled_dir>/bin/<name>[.exe], then ``configured`` as an explicit path,
    then ``configured`` looked up on PATH.
    """
    if bundled_dir is not None:
        for candidate in (bundled_dir / "bin" / name, bundled_dir / "bin" / f"{name}.exe"):
            if candidate.is_file():
                return str(candidate)

    configured_path = Path(configured)
    if configured_path.parent != Path(".") or configured_path.suffix:
        if configured_path.is_file():
            return str(configured_path)
        raise EngineNotFoundError(f"{name} not found at {configured_path}")

    found = shutil.which(configured)
    if found is None:
        raise EngineNotFoundError(f"{configured} not found on PATH")
    return found

def summarize_stderr(stderr: Optional[str], returncode: int) -> str:
    """Returns the most specific line of an engine's diagnostic output."""
    if stderr:
        lines = [line.strip() for line in stderr.splitlines() if line.strip()]
        if lines:
            return lines[-1]
    return f"ffmpeg exited with code {returncode}"

class FFmpegAdapter:
    """Runs ffmpeg argument vectors and reports their outcome."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.logger = logging.getLogger(__name__)
        self._binary: Optional[str] = None

    @property
    def binary(self) -> str:
        if self._binary is None:
            self._binary = find_engine_binary("ffmpeg", self.config.ffmpeg_path, self.config.bundled_dir)
        return self._binary

    def base_command(self) -> List[str]:
        return [self.binary, "-hide_banner", "-nostdin", "-y"]

    def run(self, args: List[str]) -> subprocess.CompletedProcess:
        """Runs ``ffmpeg <args>`` to completion.

        A non-zero exit is returned, not raised; only a binary that cannot be
        located or started raises.
        """
        cmd = self.base_command() + [str(a) for a in args]
        self.logger.debug(f"FFMPEG_CMD: {shlex.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                errors="replace",
                creationflags=_CREATION_FLAGS,
            )
        except OSError as e:
            raise EngineLaunchError(f"Could not start {cmd[0]}: {e}") from e
        if result.returncode != 0:
            self.logger.debug(f"FFMPEG_FAIL: code={result.returncode} {summarize_stderr(result.stderr, result.returncode)}")
        return result
