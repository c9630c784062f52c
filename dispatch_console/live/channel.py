"""Live update channel.

Binds the order push events of a ``PushConnection`` to the view-state
coordinator. The channel only decodes and forwards; reconciliation rules
live in the coordinator.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

from dispatch_console.core.events.events import LiveUpdateEvent
from dispatch_console.core.events.sinks.null_event_bus import NullEventBus
from dispatch_console.live.decoder import ORDER_EVENT_NAMES, decode_order_event

if TYPE_CHECKING:
    from dispatch_console.core.domain.types import OrderPatch
    from dispatch_console.core.events.event_bus import EventBus
    from dispatch_console.live.connection import EventHandler, PushConnection
    from dispatch_console.runtime.metrics import ConsoleMetrics

LOGGER = logging.getLogger(__name__)


class RemoteUpdateTarget(Protocol):
    def apply_remote_update(self, patch: OrderPatch) -> str:
        """Merge one patch and return the reconciliation outcome."""


class LiveUpdateChannel:
    """Registers one handler per order event name while attached."""

    def __init__(
        self,
        connection: PushConnection,
        target: RemoteUpdateTarget,
        *,
        metrics: ConsoleMetrics | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._connection = connection
        self._target = target
        self._metrics = metrics
        self._event_bus = event_bus or NullEventBus()
        self._handlers: dict[str, EventHandler] = {}

    @property
    def attached(self) -> bool:
        return bool(self._handlers)

    def attach(self) -> None:
        if self._handlers:
            return
        for name in ORDER_EVENT_NAMES:
            handler = self._handler_for(name)
            self._connection.subscribe(name, handler)
            self._handlers[name] = handler
        LOGGER.info("Live update channel attached", extra={"events": list(self._handlers)})

    def detach(self) -> None:
        """Unregister exactly the handlers registered by ``attach``."""
        for name, handler in self._handlers.items():
            self._connection.unsubscribe(name, handler)
        self._handlers.clear()
        LOGGER.info("Live update channel detached")

    def _handler_for(self, name: str) -> EventHandler:
        async def _on_event(payload: Any) -> None:
            self.handle(name, payload)

        return _on_event

    def handle(self, name: str, payload: Any) -> str:
        """Decode one event and forward it. Returns the outcome label."""
        patch = decode_order_event(name, payload)
        if patch is None:
            outcome = "malformed"
            self._event_bus.emit(
                LiveUpdateEvent(
                    ts_ns=time.time_ns(),
                    event_name=name,
                    order_id=None,
                    outcome=outcome,
                )
            )
        else:
            outcome = self._target.apply_remote_update(patch)

        if self._metrics is not None:
            self._metrics.count_live_event(name, outcome)
        return outcome
