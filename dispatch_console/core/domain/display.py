"""Display projections over the closed status set."""

from __future__ import annotations

from typing import Literal

from dispatch_console.core.domain.types import normalize_status

StatusVariant = Literal["neutral", "positive", "negative"]

_STATUS_LABELS: dict[str, str] = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "assigned": "Assigned",
    "out_for_delivery": "Out for Delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
    "returned": "Return Requests",
    "return_approved": "Return Approved",
    "return_rejected": "Return Rejected",
}

_CSV_STATUS_LABELS: dict[str, str] = {
    "pending": "Pending",
    "confirmed": "Confirmed",
    "assigned": "Assigned",
    "out_for_delivery": "Out for delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
    "returned": "Returned",
    "return_approved": "Return approved",
    "return_rejected": "Return rejected",
}

_STATUS_VARIANTS: dict[str, StatusVariant] = {
    "pending": "neutral",
    "confirmed": "neutral",
    "assigned": "neutral",
    "out_for_delivery": "neutral",
    "delivered": "positive",
    "cancelled": "negative",
    "returned": "negative",
    "return_approved": "positive",
    "return_rejected": "negative",
}


def _lookup(table: dict[str, str], status: str) -> str:
    key = normalize_status(status)
    try:
        return table[key]
    except KeyError:
        raise ValueError(f"Unknown order status: {status!r}") from None


def format_status(status: str) -> str:
    """Human label for a status, e.g. ``out_for_delivery`` -> "Out for Delivery"."""
    return _lookup(_STATUS_LABELS, status)


def csv_status_label(status: str) -> str:
    """Sentence-case label used by the CSV export."""
    return _lookup(_CSV_STATUS_LABELS, status)


def status_variant(status: str) -> StatusVariant:
    """Severity class used to colour status badges."""
    return _lookup(_STATUS_VARIANTS, status)  # type: ignore[return-value]
