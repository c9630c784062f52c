"""
Semantic test: JSON-lines event recorder.

Invariant:
Every event emitted before the bus closes is written as one JSON line;
events emitted afterwards are dropped.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import json

import pytest

from dispatch_console.core.events.event_bus import EventBus
from dispatch_console.core.events.events import LiveUpdateEvent, StatusMutationEvent
from dispatch_console.core.events.sinks.file_recorder import FileRecorderSink


def test_events_written_as_json_lines(tmp_path) -> None:
    path = tmp_path / "logs" / "events.jsonl"
    sink = FileRecorderSink(path)
    bus = EventBus([sink])

    bus.emit(
        StatusMutationEvent(
            ts_ns=1,
            order_id="ord-1",
            prev_status="pending",
            next_status="cancelled",
            outcome="applied",
        )
    )
    bus.emit(LiveUpdateEvent(ts_ns=2, event_name="order_deleted", order_id="ord-1", outcome="refetch"))
    bus.close()
    bus.emit(LiveUpdateEvent(ts_ns=3, event_name="order_deleted", order_id="ord-2", outcome="refetch"))

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert sink.records_written == 2
    assert lines[0]["type"] == "StatusMutationEvent"
    assert lines[0]["next_status"] == "cancelled"
    assert lines[1]["outcome"] == "refetch"


def test_closed_bus_refuses_sinks(tmp_path) -> None:
    sink = FileRecorderSink(tmp_path / "late.jsonl")
    bus = EventBus()
    bus.close()
    with pytest.raises(RuntimeError):
        bus.register(sink)
    sink.close()
