"""Reason codes attached to rejected status transitions and actions."""

from __future__ import annotations


class RejectReason:
    """String constants; kept as plain strings so they serialize as-is."""

    UNKNOWN_STATUS = "unknown_status"
    SAME_STATUS = "same_status"
    TERMINAL_STATUS = "terminal_status"
    TRANSITION_NOT_ALLOWED = "transition_not_allowed"

    REASON_REQUIRED = "reason_required"
    AGENT_REQUIRED = "agent_required"

    PICKUP_NOT_ASSIGNABLE = "pickup_not_assignable"
    PICKUP_ONLY = "pickup_only"
    PICKUP_REQUIRES_CONFIRMATION = "pickup_requires_confirmation"
    DELIVERY_ONLY = "delivery_only"

    ROW_LOCKED = "row_locked"
    RETURN_NOT_OFFERED = "return_not_offered"
    ASSIGN_VIA_DIALOG = "assign_via_dialog"
