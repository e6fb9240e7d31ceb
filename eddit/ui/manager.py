import logging
from eddit.infrastructure.event_bus import EventBus
from eddit.ui.state import UIState
from eddit.domain.events import BatchStarted, BatchFinished, MergeProgressUpdated, SegmentProgress

class UIManager:
    """Subscribes to EventBus and updates UIState."""

    def __init__(self, bus: EventBus, state: UIState):
        self.bus = bus
        self.state = state
        self.logger = logging.getLogger(__name__)
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(BatchStarted, self.on_batch_started)
        self.bus.subscribe(SegmentProgress, self.on_segment_progress)
        self.bus.subscribe(MergeProgressUpdated, self.on_merge_progress)
        self.bus.subscribe(BatchFinished, self.on_batch_finished)

    def on_batch_started(self, event: BatchStarted):
        self.state.start_batch(event.source, event.output_dir, event.total)

    def on_segment_progress(self, event: SegmentProgress):
        self.logger.debug(
            f"UI: segment {event.index + 1}/{event.total} {event.status.value} {event.progress:.0f}%"
        )
        self.state.update_segment(event.index, event.status, event.progress, event.estimated_remaining_seconds)

    def on_merge_progress(self, event: MergeProgressUpdated):
        self.state.update_merge(event.progress_percent)

    def on_batch_finished(self, event: BatchFinished):
        self.state.finish(event.results)
