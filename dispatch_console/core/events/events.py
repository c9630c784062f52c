"""
Domain event models.

These events represent immutable facts observed by the console core.
They are fanned out to sinks through the EventBus.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(slots=True)
class StatusMutationEvent:
    ts_ns: int
    order_id: str

    prev_status: str
    next_status: str

    # applied | rejected | failed | ignored
    outcome: str
    reason: str | None = None


@dataclass(slots=True)
class AssignmentEvent:
    ts_ns: int
    order_id: str
    agent_id: str | None

    # assigned | assigned_not_advanced | failed | rejected | ignored
    outcome: str
    reason: str | None = None


@dataclass(slots=True)
class LiveUpdateEvent:
    ts_ns: int
    event_name: str
    order_id: str | None

    # applied | noop | stale | dropped | refetch | malformed
    outcome: str


@dataclass(slots=True)
class WorkingSetRefreshEvent:
    ts_ns: int
    seq: int

    page: int
    total_items: int

    # False when a newer load had already been applied
    applied: bool


@dataclass(slots=True)
class LifecycleViolationEvent:
    ts_ns: int
    order_id: str
    status: str
    violation: str


DomainEvent = Union[
    StatusMutationEvent,
    AssignmentEvent,
    LiveUpdateEvent,
    WorkingSetRefreshEvent,
    LifecycleViolationEvent,
]
