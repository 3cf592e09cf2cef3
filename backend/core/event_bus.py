# core/event_bus.py - InMemoryEventBus implementation
#
# Concrete synchronous event bus. Single-process pub/sub so the maintenance
# sweep and notification transports stay decoupled. Publishing happens after
# the related database commit, so a handler failure never rolls back state.

import logging
from collections import defaultdict
from typing import Callable, Any

from core.interfaces.event_bus import EventBus, Event

log = logging.getLogger("event_bus")


class InMemoryEventBus(EventBus):
    """
    Synchronous in-process event bus.

    Handlers are called in registration order. Exceptions in one handler do not
    prevent subsequent handlers from running.
    """

    def __init__(self):
        self._handlers: dict[str, list[Callable[[Event], Any]]] = defaultdict(list)
        # "*" subscribers receive every event
        self._wildcard_handlers: list[Callable[[Event], Any]] = []

    def publish(self, event: Event) -> None:
        """Dispatch an event to all registered handlers for its type, then wildcards."""
        handlers = list(self._handlers.get(event.event_type, [])) + list(self._wildcard_handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                log.error(
                    f"Event handler {handler!r} raised for event "
                    f"'{event.event_type}': {e}",
                    exc_info=True,
                )

    def subscribe(self, event_type: str, handler: Callable[[Event], Any]) -> None:
        """Register a handler for an event type ("*" for all events)."""
        if event_type == "*":
            if handler not in self._wildcard_handlers:
                self._wildcard_handlers.append(handler)
        elif handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: Callable) -> None:
        """Remove a previously registered handler. Unknown handlers are ignored."""
        bucket = self._wildcard_handlers if event_type == "*" else self._handlers[event_type]
        if handler in bucket:
            bucket.remove(handler)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_bus: InMemoryEventBus = InMemoryEventBus()


def get_event_bus() -> InMemoryEventBus:
    """Return the application-level event bus singleton."""
    return _bus


def publish(event_type: str, source_module: str, **data) -> None:
    """Shorthand for get_event_bus().publish(Event(...))."""
    _bus.publish(Event(event_type=event_type, source_module=source_module, data=data))
