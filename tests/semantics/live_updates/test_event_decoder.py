"""
Semantic test: push event decoding.

Invariant:
Each known event name decodes into a patch of its canonical kind carrying
only the fields that kind may change. Envelope timestamps become the
patch time. Unknown names and malformed payloads are dropped (None).
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from dispatch_console.live.decoder import ORDER_EVENT_NAMES, decode_order_event


def _frame(data: dict, timestamp: str = "2024-05-01T09:00:00Z") -> dict:
    return {"data": data, "timestamp": timestamp, "type": "order"}


def test_status_update_envelope() -> None:
    patch = decode_order_event(
        "order:status-updated",
        _frame({"orderId": "o1", "orderNumber": "ORD-1", "status": "out-for-delivery"}),
    )
    assert patch is not None
    assert patch.kind == "status_updated"
    assert patch.status == "out_for_delivery"
    assert patch.occurred_at == datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
    assert set(patch.order_fields()) == {"status"}


def test_assignment_builds_agent_ref() -> None:
    patch = decode_order_event(
        "order:assigned",
        _frame({"orderId": "o1", "assignedAgentId": "a7", "agentName": "Achieng"}),
    )
    assert patch is not None
    assert patch.assigned_agent is not None
    assert (patch.assigned_agent.id, patch.assigned_agent.name) == ("a7", "Achieng")
    assert patch.status is None


def test_delivered_event_forces_status_and_proof() -> None:
    patch = decode_order_event(
        "order:delivered",
        _frame({"orderId": "o1", "deliveryProof": "https://cdn/p.jpg", "deliveredAt": "2024-05-01T08:59:00Z"}),
    )
    assert patch is not None
    assert patch.status == "delivered"
    assert patch.delivery_proof_image == "https://cdn/p.jpg"
    assert patch.delivered_at == datetime(2024, 5, 1, 8, 59, tzinfo=timezone.utc)


def test_cancel_reason_becomes_admin_notes() -> None:
    patch = decode_order_event(
        "order:status-updated",
        _frame({"orderId": "o1", "status": "cancelled", "reason": "Item out of stock"}),
    )
    assert patch is not None and patch.admin_notes == "Item out of stock"


def test_legacy_flat_payloads() -> None:
    created = decode_order_event("order_created", {"id": "o9", "orderNumber": "ORD-9"})
    deleted = decode_order_event("order_deleted", {"orderId": "o9"})
    payment = decode_order_event("payment_updated", {"orderId": "o9", "paymentReceived": True})
    assert created is not None and created.kind == "created" and created.status == "pending"
    assert deleted is not None and deleted.kind == "deleted" and deleted.order_fields() == {}
    assert payment is not None and payment.payment_received is True


def test_created_event_carries_customer_details() -> None:
    patch = decode_order_event(
        "order:created",
        _frame(
            {
                "orderId": "o2",
                "orderNumber": "ORD-2",
                "createdAt": "2024-05-01T08:58:00",
                "customerName": "Wanjiru Kamau",
                "customerPhone": "+254700000001",
            }
        ),
    )
    assert patch is not None and patch.kind == "created"
    # Naive timestamps are read as UTC.
    assert patch.created_at == datetime(2024, 5, 1, 8, 58, tzinfo=timezone.utc)
    assert (patch.customer_name, patch.customer_phone, patch.customer_email) == (
        "Wanjiru Kamau",
        "+254700000001",
        None,
    )


@pytest.mark.parametrize(
    ("name", "payload"),
    [
        ("order:shipped", _frame({"orderId": "o1"})),
        ("order:status-updated", _frame({"orderId": "o1"})),
        ("order:status-updated", _frame({"orderId": "o1", "status": "teleported"})),
        ("order:assigned", _frame({"orderId": "o1"})),
        ("order:created", _frame({"status": "pending"})),
        ("payment_updated", {"orderId": "o1"}),
        ("order:created", ["not", "an", "object"]),
    ],
)
def test_unknown_or_malformed_events_are_dropped(name: str, payload: object) -> None:
    assert decode_order_event(name, payload) is None


def test_event_names_cover_current_and_legacy_names() -> None:
    assert "order:status-updated" in ORDER_EVENT_NAMES
    assert "order_updated" in ORDER_EVENT_NAMES
    assert len(ORDER_EVENT_NAMES) == 8
