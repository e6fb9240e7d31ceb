import shutil
from pathlib import Path
from eddit.domain.errors import ExportError

DEFAULT_EXTENSION = ".mp4"

def resolve_directory(target: Path) -> Path:
    """Returns ``target`` itself, or its parent when it looks like a file path."""
    target = Path(target)
    if target.suffix:
        return target.parent
    return target

def unique_output_path(directory: Path, base_name: str, extension: str = DEFAULT_EXTENSION) -> Path:
    """Returns the first free path among ``base``, ``base_1``, ``base_2``, ...

    The existence check is not atomic: call this right before the write it
    protects, and never from concurrent writers on the same directory.
    """
    directory = resolve_directory(directory)
    candidate = directory / f"{base_name}{extension}"
    count = 1
    while candidate.exists():
        candidate = directory / f"{base_name}_{count}{extension}"
        count += 1
    return candidate

def safe_unlink(path: Path):
    Path(path).unlink(missing_ok=True)

def copy_file(src: Path, dest: Path) -> Path:
    """Copies a finished output to a user-chosen location."""
    src, dest = Path(src), Path(dest)
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dest)
    except OSError as e:
        raise ExportError(f"Failed to save video {src} to {dest}: {e}") from e
    return dest
