import logging
from typing import Type, Callable, List, Dict, Any
from eddit.domain.events import Event

class EventBus:
    """A simple synchronous, fire-and-forget event bus for progress notifications."""

    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Callable[[Any], None]]] = {}
        self.logger = logging.getLogger(__name__)

    def subscribe(self, event_type: Type[Event], callback: Callable[[Any], None]):
        """Subscribes a callback to a specific event type."""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(callback)

    def publish(self, event: Event):
        """Publishes an event to all interested subscribers.

        A failing subscriber never reaches the publisher; delivery is not retried.
        """
        event_type = type(event)
        for callback in list(self._subscribers.get(event_type, [])):
            try:
                callback(event)
            except Exception as e:
                self.logger.debug(f"Subscriber {callback!r} failed on {event_type.__name__}: {e}")
