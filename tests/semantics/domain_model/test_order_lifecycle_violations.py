"""
Semantic test: lifecycle timestamp invariants.

Invariant:
Lifecycle timestamps are set in lifecycle order, out_for_delivery needs an
assigned agent and counter payment is a pickup-only flag. Violations are
reported, never raised.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

from typing import Any, Callable

from dispatch_console.core.domain.types import Order


def test_consistent_delivered_order_has_no_violations(make_order: Callable[..., Order]) -> None:
    order = make_order(
        status="delivered",
        assignedAgent={"id": "agent-1", "name": "Otieno"},
        confirmedAt="2024-05-01T08:05:00Z",
        assignedAt="2024-05-01T08:10:00Z",
        outForDeliveryAt="2024-05-01T08:30:00Z",
        deliveredAt="2024-05-01T09:00:00Z",
    )
    assert order.lifecycle_violations() == []


def test_out_of_order_and_missing_timestamps_are_reported(make_order: Callable[..., Any]) -> None:
    order = make_order(
        status="out_for_delivery",
        assignedAt="2024-05-01T08:10:00Z",
        outForDeliveryAt="2024-05-01T08:00:00Z",
    )
    violations = order.lifecycle_violations()
    assert "assigned_at set without confirmed_at" in violations
    assert "out_for_delivery_at precedes assigned_at" in violations
    assert "out_for_delivery without assigned agent" in violations


def test_payment_received_only_on_pickup(make_order: Callable[..., Order]) -> None:
    delivery = make_order(paymentReceived=True)
    pickup = make_order(deliveryMode="pickup", paymentReceived=True)
    assert "payment_received set on home delivery" in delivery.lifecycle_violations()
    assert pickup.lifecycle_violations() == []
