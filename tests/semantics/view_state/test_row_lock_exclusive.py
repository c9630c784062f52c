"""
Semantic test: row locks are exclusive per order.

Invariant:
While an action on a row is in flight, a second action on the same row is
ignored without calling the server. Rows are locked independently, the
lock is released when the action ends (also on failure) and the working
set is never flipped optimistically.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import asyncio

import pytest

from dispatch_console.core.domain.reject_reasons import RejectReason
from dispatch_console.gateway.errors import GatewayError


@pytest.mark.asyncio
async def test_second_action_on_locked_row_is_ignored(coordinator, gateway, make_order) -> None:
    order = make_order(deliveryMode="pickup")
    gateway.orders = [order]
    await coordinator.load_page()

    gate = asyncio.Event()
    gateway.gates["set_status"] = gate

    first = asyncio.create_task(coordinator.mutate_status(order, "confirmed"))
    await asyncio.sleep(0)
    assert coordinator.is_updating(order.id)
    assert coordinator.updating_order_id == order.id

    second = await coordinator.mutate_status(order, "confirmed")
    assert second.outcome == "ignored"
    assert second.reason == RejectReason.ROW_LOCKED

    # No optimistic flip while the request is in flight.
    assert coordinator.orders[0].status == "pending"

    gate.set()
    result = await first
    assert result.ok
    assert len(gateway.calls_of("set_status")) == 1
    assert coordinator.updating_order_id is None


@pytest.mark.asyncio
async def test_other_rows_are_not_blocked(coordinator, gateway, make_order) -> None:
    slow = make_order(id="slow", deliveryMode="pickup")
    fast = make_order(id="fast", deliveryMode="pickup")
    gate = asyncio.Event()
    gateway.gates["set_status"] = gate

    slow_task = asyncio.create_task(coordinator.mutate_status(slow, "confirmed"))
    fast_task = asyncio.create_task(coordinator.mutate_status(fast, "confirmed"))
    await asyncio.sleep(0)
    assert coordinator.is_updating("slow") and coordinator.is_updating("fast")

    gate.set()
    results = await asyncio.gather(slow_task, fast_task)
    assert [r.outcome for r in results] == ["applied", "applied"]


@pytest.mark.asyncio
async def test_lock_released_after_failure(coordinator, gateway, notifier, make_order) -> None:
    order = make_order(deliveryMode="pickup")
    gateway.errors["set_status"] = [GatewayError(status_code=500)]

    result = await coordinator.mutate_status(order, "confirmed")

    assert result.outcome == "failed"
    assert result.message == "Failed to update status."
    assert not coordinator.is_updating(order.id)
    assert notifier.levels() == ["error"]
    # Failed mutations do not reload.
    assert gateway.calls_of("list_orders") == []
