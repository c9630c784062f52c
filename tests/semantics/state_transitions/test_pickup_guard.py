"""
Semantic test: pickup orders are confirmed before delivery.

Invariant:
A pending pickup order can never go straight to delivered. The engine
rejects it and names ``confirmed`` as the required intermediate step; the
planned path is pending -> confirmed -> delivered. Home-delivery orders can
never go confirmed -> delivered.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

from dispatch_console.core.domain.reject_reasons import RejectReason
from dispatch_console.core.domain.transitions import (
    TransitionContext,
    can_transition,
    plan_transition,
)

PICKUP = TransitionContext(delivery_mode="pickup")


def test_pending_pickup_cannot_be_delivered_directly() -> None:
    decision = can_transition("pending", "delivered", PICKUP)
    assert not decision.allowed
    assert decision.reason == RejectReason.PICKUP_REQUIRES_CONFIRMATION
    assert decision.required_step == "confirmed"


def test_guided_path_confirms_first() -> None:
    steps = plan_transition("pending", "delivered", PICKUP)
    assert steps == [
        ("confirmed", "Order confirmed for pickup"),
        ("delivered", None),
    ]


def test_confirmed_pickup_is_delivered_directly() -> None:
    assert plan_transition("confirmed", "delivered", PICKUP) == [("delivered", None)]


def test_home_delivery_cannot_skip_agent_stages() -> None:
    decision = can_transition("confirmed", "delivered")
    assert decision.reason == RejectReason.PICKUP_ONLY
    assert plan_transition("confirmed", "delivered") is None


def test_pickup_orders_are_never_assigned() -> None:
    decision = can_transition("confirmed", "assigned", TransitionContext(delivery_mode="pickup", agent_id="a"))
    assert decision.reason == RejectReason.PICKUP_NOT_ASSIGNABLE
