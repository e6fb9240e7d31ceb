import json
import subprocess
import pytest
import yaml
from pathlib import Path
from eddit.config.models import AppConfig, PipelineConfig, ProgressConfig

def _probe_payload(duration="10.0", width=1920, height=1080, r_frame_rate="30/1", codec_name="h264", with_video=True):
    streams = [{"index": 1, "codec_type": "audio", "codec_name": "aac"}]
    if with_video:
        streams.insert(0, {
            "index": 0,
            "codec_name": codec_name,
            "codec_type": "video",
            "width": width,
            "height": height,
            "r_frame_rate": r_frame_rate,
            "avg_frame_rate": r_frame_rate,
        })
    return {"streams": streams, "format": {"duration": duration}}

@pytest.fixture
def fake_engine(monkeypatch):
    """Pretends ffmpeg/ffprobe are installed so no test depends on the real binaries."""
    monkeypatch.setattr("eddit.infrastructure.ffmpeg.shutil.which", lambda name: f"/usr/bin/{name}")

@pytest.fixture
def completed():
    """Factory for subprocess.CompletedProcess results."""
    def _make(returncode=0, stdout="", stderr="", args=None):
        return subprocess.CompletedProcess(args=args or ["ffmpeg"], returncode=returncode, stdout=stdout, stderr=stderr)
    return _make

@pytest.fixture
def probe_json():
    """Factory for ffprobe -print_format json output."""
    def _make(**kwargs):
        return json.dumps(_probe_payload(**kwargs))
    return _make

@pytest.fixture
def app_config(tmp_path):
    scratch = tmp_path / "scratch"
    return AppConfig(
        progress=ProgressConfig(poll_interval=0.01, file_wait_timeout=1.0),
        pipeline=PipelineConfig(scratch_dir=scratch),
    )

@pytest.fixture
def media_files(tmp_path):
    """Empty stand-ins for source and intro clips."""
    d = tmp_path / "media"
    d.mkdir()
    source = d / "lecture.mp4"
    intro = d / "intro.mp4"
    source.write_bytes(b"source")
    intro.write_bytes(b"intro")
    return source, intro

@pytest.fixture
def eddit_yaml(tmp_path):
    conf_dir = tmp_path / "conf"
    conf_dir.mkdir()
    conf_file = conf_dir / "eddit.yaml"

    content = {
        'engine': {
            'crf_codecs': ['libx264', 'libx265', 'libsvtav1'],
            'fallback_preset': 'fast',
            'fallback_crf': 28,
        },
        'progress': {'poll_interval': 0.5},
        'pipeline': {'keep_intermediates': True},
    }

    with open(conf_file, 'w') as f:
        yaml.dump(content, f)

    return conf_file
