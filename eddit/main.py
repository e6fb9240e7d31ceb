import tempfile
import typer
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from rich.console import Console
from eddit.config.loader import load_config, load_segments
from eddit.config.models import AppConfig
from eddit.domain.errors import PipelineError
from eddit.domain.models import CompressionProfile
from eddit.infrastructure.event_bus import EventBus
from eddit.infrastructure.ffmpeg import FFmpegAdapter
from eddit.infrastructure.ffprobe import FFprobeAdapter
from eddit.infrastructure.files import copy_file, resolve_directory
from eddit.infrastructure.housekeeping import HousekeepingService
from eddit.infrastructure.logging import setup_logging
from eddit.pipeline.compressor import Compressor
from eddit.pipeline.cutter import SegmentCutter
from eddit.pipeline.merger import IntroMerger
from eddit.pipeline.orchestrator import Orchestrator
from eddit.ui.dashboard import Dashboard
from eddit.ui.manager import UIManager
from eddit.ui.state import UIState

app = typer.Typer(help="eddit - cut, add intros to and compress video segments with ffmpeg")
console = Console()

@dataclass
class Components:
    config: AppConfig
    ffprobe: FFprobeAdapter
    cutter: SegmentCutter
    merger: IntroMerger
    compressor: Compressor
    orchestrator: Orchestrator

def build_components(config: AppConfig, bus: Optional[EventBus] = None) -> Components:
    ffmpeg = FFmpegAdapter(config.engine)
    ffprobe = FFprobeAdapter(config.engine)
    cutter = SegmentCutter(ffmpeg, config.pipeline)
    merger = IntroMerger(ffmpeg, ffprobe, config, event_bus=bus)
    compressor = Compressor(ffmpeg, config)
    orchestrator = Orchestrator(
        config=config,
        ffprobe_adapter=ffprobe,
        cutter=cutter,
        merger=merger,
        compressor=compressor,
        event_bus=bus,
    )
    return Components(config, ffprobe, cutter, merger, compressor, orchestrator)

def _fail(message: str):
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)

def _prepare(config_path: Optional[Path], output_dir: Path, debug: bool) -> AppConfig:
    try:
        config = load_config(config_path)
    except PipelineError as e:
        _fail(str(e))
    if debug:
        config.pipeline.debug = True
    logger = setup_logging(resolve_directory(output_dir), debug=config.pipeline.debug)
    logger.info(f"eddit started: output={output_dir}")
    return config

ConfigOption = typer.Option(Path("conf/eddit.yaml"), "--config", "-c", help="Path to YAML config")
DebugOption = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging")

@app.command()
def probe(
    source: Path = typer.Argument(..., help="Video file to inspect"),
    config_path: Optional[Path] = ConfigOption,
):
    """Print duration, resolution, frame rate and codec of a video."""
    try:
        metadata = build_components(load_config(config_path)).ffprobe.get_metadata(source)
    except PipelineError as e:
        _fail(str(e))
    console.print(
        f"[bold]{source.name}[/]: {metadata.duration:.2f}s, {metadata.width}x{metadata.height}, "
        f"{metadata.framerate:.3f} fps, {metadata.codec}"
    )

@app.command()
def cut(
    source: Path = typer.Argument(..., help="Source video"),
    start: float = typer.Argument(..., help="Start time in seconds"),
    end: float = typer.Argument(..., help="End time in seconds"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Output base name"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Output directory"),
    config_path: Optional[Path] = ConfigOption,
    debug: bool = DebugOption,
):
    """Losslessly extract [start, end) from a video."""
    config = _prepare(config_path, output_dir, debug)
    try:
        output = build_components(config).cutter.cut(source, start, end, output_dir, name or f"{source.stem}_cut")
    except PipelineError as e:
        _fail(str(e))
    console.print(f"[green]Cut written to[/] {output}")

@app.command()
def merge(
    intro: Path = typer.Argument(..., help="Intro clip"),
    video: Path = typer.Argument(..., help="Main clip"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Output directory"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show live merge progress"),
    config_path: Optional[Path] = ConfigOption,
    debug: bool = DebugOption,
):
    """Prepend an intro clip to a video."""
    config = _prepare(config_path, output_dir, debug)
    try:
        if progress:
            bus = EventBus()
            state = UIState()
            UIManager(bus, state)
            with Dashboard(state, console=console):
                output = build_components(config, bus).merger.merge_with_progress(intro, video, output_dir)
        else:
            output = build_components(config).merger.merge(intro, video, output_dir)
    except PipelineError as e:
        _fail(str(e))
    console.print(f"[green]Merged video written to[/] {output}")

@app.command()
def compress(
    source: Path = typer.Argument(..., help="Video to re-encode"),
    quality: int = typer.Option(..., "--quality", "-q", min=0, max=51, help="0-51, lower is better"),
    preset: str = typer.Option(..., "--preset", "-p", help="Encoder preset, e.g. medium"),
    codec: str = typer.Option(..., "--codec", help="Video codec, e.g. libx264"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Output directory"),
    config_path: Optional[Path] = ConfigOption,
    debug: bool = DebugOption,
):
    """Re-encode a video with a complete compression profile."""
    config = _prepare(config_path, output_dir, debug)
    profile = CompressionProfile(quality=quality, preset=preset, codec=codec)
    try:
        output = build_components(config).compressor.compress(source, output_dir, profile)
    except PipelineError as e:
        _fail(str(e))
    console.print(f"[green]Compressed video written to[/] {output}")

@app.command()
def process(
    source: Path = typer.Argument(..., help="Source video"),
    segments_file: Path = typer.Argument(..., help="YAML/JSON file describing the segments"),
    output_dir: Path = typer.Option(Path("out"), "--output-dir", "-o", help="Output directory"),
    config_path: Optional[Path] = ConfigOption,
    debug: bool = DebugOption,
):
    """Cut every segment of a batch, adding intros and compressing as requested."""
    if not source.exists():
        _fail(f"Source {source} does not exist.")

    config = _prepare(config_path, output_dir, debug)
    try:
        segments, profile = load_segments(segments_file)
    except PipelineError as e:
        _fail(str(e))

    HousekeepingService().cleanup_scratch(config.pipeline.scratch_dir or Path(tempfile.gettempdir()))

    bus = EventBus()
    state = UIState()
    UIManager(bus, state)
    components = build_components(config, bus)
    dashboard = Dashboard(state, console=console)

    try:
        with dashboard:
            results = components.orchestrator.run(source, segments, output_dir, profile)
    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user")
        raise typer.Exit(code=130)
    except PipelineError as e:
        _fail(str(e))

    console.print(dashboard.results_table(results))
    if not all(r.success for r in results):
        raise typer.Exit(code=1)

@app.command()
def save(
    src: Path = typer.Argument(..., help="Finished video"),
    dest: Path = typer.Argument(..., help="Destination path"),
):
    """Copy a finished video to its final location."""
    try:
        copy_file(src, dest)
    except PipelineError as e:
        _fail(str(e))
    console.print(f"[green]Saved to[/] {dest}")

if __name__ == "__main__":
    app()
