"""
Fan-out of console domain events to sinks.

Emission is synchronous and happens on the event loop thread, so sinks see
events in the order the coordinator produced them.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from dispatch_console.core.events.event_sink import EventSink
    from dispatch_console.core.events.events import DomainEvent

LOGGER = logging.getLogger(__name__)


class EventBus:
    """Delivers every emitted event to each registered sink."""

    def __init__(self, sinks: Iterable[EventSink] = ()) -> None:
        self._sinks: list[EventSink] = list(sinks)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, sink: EventSink) -> None:
        if self._closed:
            raise RuntimeError("event bus is closed")
        self._sinks.append(sink)

    def unregister(self, sink: EventSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def emit(self, event: DomainEvent) -> None:
        if self._closed:
            # Late events from tasks finishing during shutdown.
            LOGGER.debug("Event emitted after close", extra={"event_type": type(event).__name__})
            return
        for sink in self._sinks:
            sink.on_event(event)

    def close(self) -> None:
        """Close sinks that own resources. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        for sink in self._sinks:
            close = getattr(sink, "close", None)
            if callable(close):
                close()
