import json
from pathlib import Path
from typing import List, Optional, Tuple
import yaml
from pydantic import ValidationError
from eddit.config.models import AppConfig
from eddit.domain.errors import ConfigError
from eddit.domain.models import CompressionProfile, SegmentRequest

def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file.
    A missing file yields the defaults; unreadable or invalid content raises ConfigError.
    """
    if config_path is None or not Path(config_path).exists():
        return AppConfig()

    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping at top level")

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from e

def load_segments(path: Path) -> Tuple[List[SegmentRequest], Optional[CompressionProfile]]:
    """
    Load a batch description.

    The file is YAML (JSON is accepted too, as a YAML subset, and ``.json`` files
    are read with the json module)::

        segments:
          - {start_time: 0, end_time: 12.5, output_name: clip_a}
          - {start_time: 30, end_time: 45, output_name: clip_b, intro_path: intro.mp4}
        compression: {quality: 23, preset: medium, codec: libx264}

    Relative ``intro_path`` values are resolved against the batch file's directory.
    """
    path = Path(path)
    try:
        text = path.read_text()
        data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    except OSError as e:
        raise ConfigError(f"Cannot read segments file {path}: {e}") from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse segments file {path}: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("segments"), list):
        raise ConfigError(f"Segments file {path} must contain a 'segments' list")

    segments = []
    try:
        for entry in data["segments"]:
            intro = entry.get("intro_path")
            if intro and not Path(intro).is_absolute():
                entry = {**entry, "intro_path": path.parent / intro}
            segments.append(SegmentRequest(**entry))
        profile = CompressionProfile(**data["compression"]) if data.get("compression") else None
    except (ValidationError, TypeError, AttributeError) as e:
        raise ConfigError(f"Invalid segments file {path}: {e}") from e

    return segments, profile
