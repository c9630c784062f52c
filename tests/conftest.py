"""Shared fakes for the semantic test suite."""

# pylint: disable=missing-function-docstring,redefined-outer-name
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from dispatch_console.core.domain.types import AgentRef, Order, OrderFilter, OrderPage, Pagination
from dispatch_console.core.events.event_bus import EventBus
from dispatch_console.sync.coordinator import ViewStateCoordinator

_STATUS_STAMPS = {
    "confirmed": "confirmed_at",
    "assigned": "assigned_at",
    "out_for_delivery": "out_for_delivery_at",
    "delivered": "delivered_at",
    "cancelled": "cancelled_at",
    "returned": "returned_at",
}


class FakeGateway:
    """In-memory stand-in for ``OrderGateway`` recording every call."""

    def __init__(self) -> None:
        self.orders: list[Order] = []
        # backend status -> total, used for limit=1 count queries
        self.counts: dict[str, int] = {}
        self.calls: list[tuple[Any, ...]] = []
        # operation -> exceptions raised by the next calls, in order
        self.errors: dict[str, list[Exception]] = {}
        # operation -> event awaited before the call returns
        self.gates: dict[str, asyncio.Event] = {}
        self.list_hook: Callable[[OrderFilter, int], Any] | None = None

    def calls_of(self, operation: str) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == operation]

    async def _enter(self, operation: str) -> None:
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        pending = self.errors.get(operation)
        if pending:
            raise pending.pop(0)

    async def list_orders(
        self,
        order_filter: OrderFilter | None = None,
        *,
        page: int = 1,
        limit: int = 10,
    ) -> OrderPage:
        order_filter = order_filter or OrderFilter()
        if limit == 1:
            self.calls.append(("count_orders", order_filter.backend_status))
            await self._enter("count_orders")
            total = self.counts.get(order_filter.backend_status or "all", 0)
            return OrderPage(pagination=Pagination(total_items=total))

        self.calls.append(("list_orders", order_filter, page, limit))
        if self.list_hook is not None:
            return await self.list_hook(order_filter, page)
        await self._enter("list_orders")
        orders = [o for o in self.orders if order_filter.includes_status(o.status)]
        return OrderPage(orders=orders, pagination=Pagination(total_items=len(orders)))

    def _update(self, order_id: str, **changes: Any) -> None:
        # Accepted mutations land in the store so the reload sees them.
        self.orders = [
            order.model_copy(update=changes) if order.id == order_id else order
            for order in self.orders
        ]

    async def set_status(self, order_id: str, status: str, notes: str | None = None) -> Order | None:
        self.calls.append(("set_status", order_id, status, notes))
        await self._enter("set_status")
        changes: dict[str, Any] = {"status": status, "admin_notes": notes}
        stamp = _STATUS_STAMPS.get(status)
        if stamp is not None:
            changes[stamp] = datetime.now(timezone.utc)
        if status == "returned":
            changes["return_reason"] = notes
        self._update(order_id, **changes)
        return None

    async def assign_agent(self, order_id: str, agent_id: str) -> Order | None:
        self.calls.append(("assign_agent", order_id, agent_id))
        await self._enter("assign_agent")
        self._update(order_id, assigned_agent=AgentRef(id=agent_id))
        return None

    async def set_payment_received(
        self,
        order_id: str,
        received: bool,
        notes: str,
        *,
        delivery_mode: str | None = None,
    ) -> Order | None:
        self.calls.append(("set_payment_received", order_id, received, notes))
        await self._enter("set_payment_received")
        self._update(order_id, payment_received=received)
        return None


class RecordingNotifier:
    def __init__(self) -> None:
        self.notices: list[tuple[str, str, str]] = []

    def notify(self, title: str, message: str, *, level: str = "info") -> None:
        self.notices.append((title, message, level))

    def levels(self) -> list[str]:
        return [level for _, _, level in self.notices]


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]


def build_order(**overrides: Any) -> Order:
    data: dict[str, Any] = {
        "id": "ord-1",
        "orderNumber": "ORD-2024-00001234",
        "status": "pending",
        "deliveryMode": "home_delivery",
        "paymentMethod": "cash_on_delivery",
        "customerName": "Wanjiru Kamau",
        "totalAmount": "1234.5",
        "items": [
            {"productName": "LPG Cylinder", "variantLabel": "13kg", "quantity": 1},
        ],
        "createdAt": "2024-05-01T08:00:00Z",
        "updatedAt": "2024-05-01T08:00:00Z",
    }
    data.update(overrides)
    return Order.model_validate(data)


@pytest.fixture
def make_order() -> Callable[..., Order]:
    return build_order


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def event_bus(sink: RecordingSink) -> EventBus:
    return EventBus([sink])


@pytest.fixture
def coordinator(
    gateway: FakeGateway,
    notifier: RecordingNotifier,
    event_bus: EventBus,
) -> ViewStateCoordinator:
    # Zero window: coalesced refreshes run on the next loop iteration.
    return ViewStateCoordinator(
        gateway,  # type: ignore[arg-type]
        notifier,
        event_bus=event_bus,
        refresh_window=0,
    )
