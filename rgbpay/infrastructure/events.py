"""In-process event bus implementing the host event-bus capability."""
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Type, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")
Handler = Callable[[Any], None]


class Subscription:
    def __init__(self, bus: "EventAggregator", event_type: type, handler: Handler) -> None:
        self._bus = bus
        self._event_type = event_type
        self._handler = handler
        self._active = True

    def dispose(self) -> None:
        if self._active:
            self._bus._unsubscribe(self._event_type, self._handler)
            self._active = False

    def __call__(self) -> None:
        self.dispose()


class EventAggregator:
    """Synchronous publish/subscribe keyed by event class.

    Handlers run on the publishing thread and must not block.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[type, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> Subscription:
        with self._lock:
            self._handlers[event_type].append(handler)
        return Subscription(self, event_type, handler)

    def _unsubscribe(self, event_type: type, handler: Handler) -> None:
        with self._lock:
            handlers = self._handlers.get(event_type)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def publish(self, event: Any) -> None:
        with self._lock:
            handlers = [
                handler
                for event_type, registered in self._handlers.items()
                if isinstance(event, event_type)
                for handler in registered
            ]
        for handler in handlers:
            try:
                handler(event)
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("event handler for %s failed: %s", type(event).__name__, exc)

    def subscriber_count(self, event_type: type) -> int:
        with self._lock:
            return len(self._handlers.get(event_type, []))


__all__ = ["EventAggregator", "Subscription"]
