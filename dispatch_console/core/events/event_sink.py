"""
Consumers of console domain events.

A sink may also define ``close()``; the bus calls it once on shutdown.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from dispatch_console.core.events.events import DomainEvent


class EventSink(Protocol):
    def on_event(self, event: DomainEvent) -> None:
        """Consume one event. Must not block the event loop."""
