"""
In-process typed event bus.

Handlers subscribe to an exact event class and run synchronously on the
emitting thread, in subscription order. A failing handler is logged and
does not stop the remaining handlers.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Type

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


class EventBus:
    """
    Example:
        bus = EventBus()
        unsubscribe = bus.subscribe(RegionEntered, notifier.handle_region_entered)
        bus.emit(RegionEntered(region_id="Joe's Diner_40.7123_-74.0099"))
        unsubscribe()
    """

    def __init__(self):
        self._handlers: DefaultDict[Type, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type, handler: Handler) -> Callable[[], None]:
        """Register handler for event_type; returns an unsubscribe callable."""
        with self._lock:
            self._handlers[event_type].append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(event_type, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def emit(self, event: Any) -> int:
        """Deliver event to its handlers; returns how many ran without error."""
        with self._lock:
            handlers = list(self._handlers.get(type(event), []))

        if not handlers:
            logger.debug(f"No handlers for {type(event).__name__}")
            return 0

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(f"❌ Handler {getattr(handler, '__qualname__', handler)} "
                                 f"failed for {type(event).__name__}")
        return delivered

    def handler_count(self, event_type: Type) -> int:
        with self._lock:
            return len(self._handlers.get(event_type, []))
