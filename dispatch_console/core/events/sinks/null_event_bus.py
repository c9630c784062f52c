from __future__ import annotations

from typing import TYPE_CHECKING

from dispatch_console.core.events.event_bus import EventBus

if TYPE_CHECKING:
    from dispatch_console.core.events.events import DomainEvent


class NullEventBus(EventBus):
    """Bus used when no observer is wired in; events go nowhere."""

    def emit(self, event: DomainEvent) -> None:
        return
