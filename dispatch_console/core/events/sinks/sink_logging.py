"""
Logging event sink.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from dispatch_console.core.events.events import LifecycleViolationEvent

if TYPE_CHECKING:
    from dispatch_console.core.events.events import DomainEvent

# Outcomes an operator should see without DEBUG logging.
_WARNING_OUTCOMES = frozenset({"failed", "malformed", "assigned_not_advanced"})


class LoggingEventSink:
    """Logs each domain event with its fields under ``extra``."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @staticmethod
    def _level(event: DomainEvent) -> int:
        if isinstance(event, LifecycleViolationEvent):
            return logging.WARNING
        if getattr(event, "outcome", None) in _WARNING_OUTCOMES:
            return logging.WARNING
        return logging.INFO

    def on_event(self, event: DomainEvent) -> None:
        self._logger.log(
            self._level(event),
            "domain_event %s",
            type(event).__name__,
            extra={"domain_event": dataclasses.asdict(event)},
        )
