"""
Order lifecycle state machine definitions.

This module defines the terminal order statuses and the allowed transitions
between them. It is passive: it answers "is this edge part of the
lifecycle graph", while side-data requirements (reasons, agents, delivery
mode) are checked by ``transitions.can_transition``.
"""

from __future__ import annotations

# Terminal statuses: once reached, no further manual transition is offered.
ORDER_TERMINAL_STATES: frozenset[str] = frozenset(
    {
        "cancelled",
        "return_approved",
        "return_rejected",
    }
)


# Allowed order status transitions.
#
# Key   : current status (or None if the order was not previously observed)
# Value : set of allowed next statuses
#
# Notes:
# - re-assignment is not a status edge; it goes through the assignment saga.
# - confirmed -> delivered exists for pickup orders only and
#   confirmed -> assigned for home delivery only; the engine checks the mode.
# - delivered is not terminal: it can still move to returned.
ORDER_ALLOWED_TRANSITIONS: dict[str | None, frozenset[str]] = {
    None: frozenset({"pending"}),

    "pending": frozenset(
        {
            "confirmed",
            "cancelled",
        }
    ),

    "confirmed": frozenset(
        {
            "assigned",
            "delivered",
        }
    ),

    "assigned": frozenset({"out_for_delivery"}),

    "out_for_delivery": frozenset({"delivered"}),

    "delivered": frozenset({"returned"}),

    "returned": frozenset(
        {
            "return_approved",
            "return_rejected",
        }
    ),
}


def is_terminal_state(state: str) -> bool:
    """Return True if the given status is terminal."""
    return state in ORDER_TERMINAL_STATES


def is_valid_transition(prev_state: str | None, next_state: str) -> bool:
    """Return True if the transition prev_state -> next_state is allowed."""
    allowed = ORDER_ALLOWED_TRANSITIONS.get(prev_state)
    if allowed is None:
        return False
    return next_state in allowed
