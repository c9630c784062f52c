"""Per-session push connection.

Holds the handler registry for one authenticated session. The transport
feeds decoded frames into ``dispatch``; components register and unregister
handlers by event name. Handlers may be plain callables or coroutine
functions.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Union

LOGGER = logging.getLogger(__name__)

EventHandler = Callable[[Any], Union[Awaitable[None], None]]


class PushConnection:
    """Handler registry shared by every live component of a session."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}
        self._closed = False

    @property
    def connected(self) -> bool:
        return not self._closed

    def subscribe(self, event: str, handler: EventHandler) -> None:
        """Register ``handler`` for ``event``. Registering twice is a no-op."""
        if self._closed:
            raise RuntimeError("push connection is closed")
        handlers = self._handlers.setdefault(event, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        """Remove ``handler`` for ``event`` if registered."""
        handlers = self._handlers.get(event)
        if not handlers:
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._handlers[event]

    def handler_count(self, event: str | None = None) -> int:
        if event is not None:
            return len(self._handlers.get(event, ()))
        return sum(len(handlers) for handlers in self._handlers.values())

    async def dispatch(self, event: str, payload: Any) -> int:
        """Deliver one event to its handlers, in registration order.

        Returns the number of handlers invoked. Handler errors propagate to
        the caller.
        """
        # Copy: handlers may unsubscribe while being dispatched.
        handlers = list(self._handlers.get(event, ()))
        if not handlers:
            LOGGER.debug("No handlers for push event", extra={"event_name": event})
            return 0

        for handler in handlers:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result
        return len(handlers)

    def close(self) -> None:
        """Drop every handler and refuse new subscriptions."""
        self._handlers.clear()
        self._closed = True
