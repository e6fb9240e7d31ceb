import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence
from eddit.config.models import AppConfig
from eddit.domain.errors import PipelineError
from eddit.domain.events import BatchFinished, BatchStarted, SegmentProgress
from eddit.domain.models import CompressionProfile, OperationResult, SegmentRequest, SegmentStatus
from eddit.infrastructure.event_bus import EventBus
from eddit.infrastructure.ffprobe import FFprobeAdapter
from eddit.infrastructure.files import resolve_directory, safe_unlink
from eddit.pipeline.compressor import Compressor
from eddit.pipeline.cutter import SegmentCutter
from eddit.pipeline.merger import IntroMerger

class Orchestrator:
    """Runs cut -> intro -> compress for each segment of a batch, in order.

    A failing segment is recorded as a failed OperationResult and the batch moves
    on; ``run`` itself only raises for programming errors.
    """

    def __init__(
        self,
        config: AppConfig,
        ffprobe_adapter: FFprobeAdapter,
        cutter: SegmentCutter,
        merger: IntroMerger,
        compressor: Compressor,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config
        self.ffprobe_adapter = ffprobe_adapter
        self.cutter = cutter
        self.merger = merger
        self.compressor = compressor
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    def _emit(self, index: int, total: int, status: SegmentStatus, progress: float, eta: Optional[float] = None):
        if self.event_bus is None:
            return
        self.event_bus.publish(SegmentProgress(
            index=index,
            total=total,
            status=status,
            progress=progress,
            estimated_remaining_seconds=eta,
        ))

    def _source_duration(self, source: Path) -> Optional[float]:
        if not self.config.pipeline.validate_bounds:
            return None
        try:
            return self.ffprobe_adapter.get_duration(source)
        except PipelineError as e:
            self.logger.warning(f"Could not probe {source} for bounds validation, leaving it to ffmpeg: {e}")
            return None

    def _process_segment(
        self,
        source: Path,
        segment: SegmentRequest,
        output_dir: Path,
        profile: Optional[CompressionProfile],
        source_duration: Optional[float],
        index: int,
        total: int,
    ) -> OperationResult:
        # 1. Cut
        self._emit(index, total, SegmentStatus.CUTTING, 0)
        try:
            final_path = self.cutter.cut(
                source, segment.start_time, segment.end_time, output_dir, segment.output_name,
                source_duration=source_duration,
            )
        except PipelineError as e:
            return OperationResult.failed(f"Failed to cut segment: {e}")
        self._emit(index, total, SegmentStatus.CUTTING, 50)

        # 2. Intro
        if segment.intro_path is not None:
            self._emit(index, total, SegmentStatus.ADDING_INTRO, 0)
            try:
                if self.event_bus is not None:
                    merged_path = self.merger.merge_with_progress(segment.intro_path, final_path, output_dir)
                else:
                    merged_path = self.merger.merge(segment.intro_path, final_path, output_dir)
            except PipelineError as e:
                return OperationResult.failed(f"Failed to add intro: {e}", output_path=final_path)
            if not self.config.pipeline.keep_intermediates:
                safe_unlink(final_path)
            final_path = merged_path
            self._emit(index, total, SegmentStatus.ADDING_INTRO, 100)

        # 3. Compress
        if profile is not None:
            self._emit(index, total, SegmentStatus.COMPRESSING, 0)
            try:
                compressed_path = self.compressor.compress(final_path, output_dir, profile)
            except PipelineError as e:
                return OperationResult.failed(f"Failed to compress: {e}", output_path=final_path)
            safe_unlink(final_path)
            final_path = compressed_path

        return OperationResult.ok(final_path)

    def run(
        self,
        source: Path,
        segments: Sequence[SegmentRequest],
        output_dir: Path,
        profile: Optional[CompressionProfile] = None,
    ) -> List[OperationResult]:
        source = Path(source)
        output_dir = resolve_directory(Path(output_dir))
        output_dir.mkdir(parents=True, exist_ok=True)
        total = len(segments)

        self.logger.info(f"BATCH_START: {source.name} segments={total} output={output_dir}")
        if self.event_bus is not None:
            self.event_bus.publish(BatchStarted(source=source, output_dir=output_dir, total=total))

        source_duration = self._source_duration(source)
        results: List[OperationResult] = []

        for index, segment in enumerate(segments):
            started = time.monotonic()
            result = self._process_segment(source, segment, output_dir, profile, source_duration, index, total)
            results.append(result)

            if result.success:
                # Linear extrapolation from the item just finished
                eta = (time.monotonic() - started) * (total - (index + 1))
                self._emit(index, total, SegmentStatus.COMPLETED, 100, eta)
                self.logger.info(f"SEGMENT_OK: {index + 1}/{total} {segment.output_name} -> {result.output_path}")
            else:
                self._emit(index, total, SegmentStatus.FAILED, 0)
                self.logger.warning(f"SEGMENT_FAIL: {index + 1}/{total} {segment.output_name}: {result.error_message}")

        succeeded = sum(1 for r in results if r.success)
        self.logger.info(f"BATCH_END: {succeeded}/{total} segments succeeded")
        if self.event_bus is not None:
            self.event_bus.publish(BatchFinished(results=results))
        return results
