"""Status transition engine.

Pure decision logic on top of the lifecycle graph in
``order_state_machine``: which manual transitions are legal for an order,
which side data they need (reason, agent, notes) and which default notes
are attached. Nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from dispatch_console.core.domain.order_state_machine import (
    is_terminal_state,
    is_valid_transition,
)
from dispatch_console.core.domain.reject_reasons import RejectReason
from dispatch_console.core.domain.types import ORDER_STATUSES, normalize_status

if TYPE_CHECKING:
    from dispatch_console.core.domain.types import Order

CONFIRM_NOTE_DELIVERY = "Order confirmed and ready for delivery"
CONFIRM_NOTE_PICKUP = "Order confirmed for pickup"
ASSIGNED_NOTE = "Agent assigned"

# Statuses from which the assignment saga may run. Pending home-delivery
# orders are confirmed implicitly by being assigned.
ASSIGNABLE_STATES: frozenset[str] = frozenset({"pending", "confirmed", "assigned"})

_REASON_TARGETS: frozenset[str] = frozenset({"cancelled", "returned"})
_AGENT_TARGETS: frozenset[str] = frozenset({"assigned", "out_for_delivery"})


@dataclass(frozen=True, slots=True)
class TransitionContext:
    """Side data available to a transition request."""

    delivery_mode: str = "home_delivery"
    agent_id: str | None = None
    notes: str | None = None

    @classmethod
    def for_order(
        cls,
        order: Order,
        *,
        notes: str | None = None,
        agent_id: str | None = None,
    ) -> TransitionContext:
        if agent_id is None and order.assigned_agent is not None:
            agent_id = order.assigned_agent.id
        return cls(delivery_mode=order.delivery_mode, agent_id=agent_id, notes=notes)

    @property
    def is_pickup(self) -> bool:
        return self.delivery_mode == "pickup"


@dataclass(frozen=True, slots=True)
class TransitionDecision:
    """Result of a transition check.

    - allowed: the transition may be sent to the backend as-is
    - reason: RejectReason constant when not allowed
    - required_step: status that must be reached first (pickup guard)
    - notes: admin notes to send with the status change
    """

    allowed: bool
    reason: str | None = None
    required_step: str | None = None
    notes: str | None = None


def _reject(reason: str, *, required_step: str | None = None) -> TransitionDecision:
    return TransitionDecision(allowed=False, reason=reason, required_step=required_step)


def default_confirmation_note(delivery_mode: str) -> str:
    if delivery_mode == "pickup":
        return CONFIRM_NOTE_PICKUP
    return CONFIRM_NOTE_DELIVERY


# pylint: disable=too-many-return-statements
def can_transition(
    current: str,
    target: str,
    context: TransitionContext | None = None,
) -> TransitionDecision:
    """Decide whether ``current -> target`` is a legal manual transition."""
    ctx = context or TransitionContext()
    current = normalize_status(current)
    target = normalize_status(target)

    if current not in ORDER_STATUSES or target not in ORDER_STATUSES:
        return _reject(RejectReason.UNKNOWN_STATUS)

    # Pickup orders must be confirmed at the counter before delivery.
    if ctx.is_pickup and current == "pending" and target == "delivered":
        return _reject(RejectReason.PICKUP_REQUIRES_CONFIRMATION, required_step="confirmed")

    if is_terminal_state(current):
        return _reject(RejectReason.TERMINAL_STATUS)

    if current == target:
        return _reject(RejectReason.SAME_STATUS)

    if not is_valid_transition(current, target):
        return _reject(RejectReason.TRANSITION_NOT_ALLOWED)

    if target in _AGENT_TARGETS:
        if ctx.is_pickup:
            return _reject(RejectReason.PICKUP_NOT_ASSIGNABLE)
        if not ctx.agent_id:
            return _reject(RejectReason.AGENT_REQUIRED)

    if current == "confirmed" and target == "delivered" and not ctx.is_pickup:
        return _reject(RejectReason.PICKUP_ONLY)

    notes = ctx.notes.strip() if ctx.notes else ""

    if target in _REASON_TARGETS:
        if not notes:
            return _reject(RejectReason.REASON_REQUIRED)
        return TransitionDecision(allowed=True, notes=notes)

    if target == "confirmed" and not notes:
        notes = default_confirmation_note(ctx.delivery_mode)

    return TransitionDecision(allowed=True, notes=notes or None)


def plan_transition(
    current: str,
    target: str,
    context: TransitionContext | None = None,
) -> list[tuple[str, str | None]] | None:
    """Return the (status, notes) steps needed to reach ``target``.

    A directly legal transition yields one step. When the engine demands an
    intermediate status (pickup guard) the guided path is returned instead.
    Returns None if no path exists.
    """
    ctx = context or TransitionContext()
    decision = can_transition(current, target, ctx)
    if decision.allowed:
        return [(normalize_status(target), decision.notes)]

    if decision.required_step is None:
        return None

    # Intermediate step carries the default note, never the caller's.
    intermediate = TransitionContext(delivery_mode=ctx.delivery_mode, agent_id=ctx.agent_id)
    first = can_transition(current, decision.required_step, intermediate)
    second = can_transition(decision.required_step, target, ctx)
    if not (first.allowed and second.allowed):
        return None
    return [
        (decision.required_step, first.notes),
        (normalize_status(target), second.notes),
    ]


def can_assign(order: Order, agent_id: str | None) -> TransitionDecision:
    """Precondition of the assign-then-advance saga."""
    if order.is_pickup:
        return _reject(RejectReason.PICKUP_NOT_ASSIGNABLE)
    if order.status not in ASSIGNABLE_STATES:
        return _reject(RejectReason.TRANSITION_NOT_ALLOWED)
    if not agent_id:
        return _reject(RejectReason.AGENT_REQUIRED)
    return TransitionDecision(allowed=True, notes=ASSIGNED_NOTE)
