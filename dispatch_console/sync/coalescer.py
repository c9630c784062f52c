"""Coalescing refresh queue.

Collects refresh triggers for a fixed window, then runs the refresh action
exactly once. Triggers that arrive while the action is running schedule a
single follow-up run. Clock and sleep are injectable so the window can be
driven by a fake clock in tests.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

LOGGER = logging.getLogger(__name__)

DEFAULT_WINDOW_S = 0.5


class RefreshCoalescer:
    """Turns bursts of triggers into one call of ``action``."""

    def __init__(
        self,
        action: Callable[[], Awaitable[None]],
        *,
        window: float = DEFAULT_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        name: str = "refresh",
    ) -> None:
        if window < 0:
            raise ValueError(f"window must be >= 0, got {window}")
        self._action = action
        self._window = float(window)
        self._clock = clock
        self._sleep = sleep
        self._name = name

        self._pending: list[str] = []
        self._deadline = 0.0
        self._task: asyncio.Task[None] | None = None
        self._closed = False

        self.runs = 0

    @property
    def pending(self) -> bool:
        """True while triggers are waiting for the window to elapse."""
        return bool(self._pending)

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self, reason: str = "") -> None:
        """Record a trigger; schedules a run if none is pending."""
        if self._closed:
            return
        self._pending.append(reason)
        if self.is_scheduled:
            return
        self._deadline = self._clock() + self._window
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            delay = self._deadline - self._clock()
            if delay > 0:
                await self._sleep(delay)
                continue

            reasons, self._pending = self._pending, []
            LOGGER.debug(
                "Coalesced refresh",
                extra={"coalescer": self._name, "triggers": len(reasons), "reasons": reasons},
            )
            try:
                await self._action()
            except Exception:  # pylint: disable=broad-exception-caught
                # Background task boundary: nothing awaits this task's result.
                LOGGER.exception("Coalesced refresh failed", extra={"coalescer": self._name})
            self.runs += 1

            if not self._pending:
                return
            self._deadline = self._clock() + self._window

    async def drain(self) -> None:
        """Wait until no run is scheduled."""
        while self._task is not None and not self._task.done():
            await self._task

    async def close(self) -> None:
        """Cancel any scheduled run and refuse further triggers."""
        self._closed = True
        self._pending.clear()
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
