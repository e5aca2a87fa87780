import logging
import threading
from typing import Type, Callable, List, Dict, Any
from hlsladder.domain.events import Event

logger = logging.getLogger(__name__)

class EventBus:
    """A simple synchronous event bus, safe to publish to from worker threads.

    A subscriber that raises is logged and skipped; the publisher and the
    remaining subscribers are not affected.
    """
    
    def __init__(self):
        self._subscribers: Dict[Type[Event], List[Callable[[Any], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[Event], callback: Callable[[Any], None]):
        """Subscribes a callback to a specific event type."""
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(callback)

    def publish(self, event: Event):
        """Publishes an event to all interested subscribers."""
        with self._lock:
            callbacks = list(self._subscribers.get(type(event), []))
        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {type(event).__name__}")
