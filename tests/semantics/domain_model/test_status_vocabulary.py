"""
Semantic test: closed status vocabulary.

Invariant:
Every status the console knows is one of nine backend values. UI tab
spellings normalize onto them, every status has a label, a CSV label and a
badge variant, and unknown values are rejected instead of rendered.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import pytest
from pydantic import ValidationError

from dispatch_console.core.domain.display import csv_status_label, format_status, status_variant
from dispatch_console.core.domain.types import (
    ORDER_STATUSES,
    STATUS_TABS,
    Order,
    OrderFilter,
    backend_status_for_tab,
    normalize_status,
)


def test_tab_spellings_normalize_to_backend_statuses() -> None:
    assert normalize_status("in-progress") == "assigned"
    assert normalize_status("out-for-delivery") == "out_for_delivery"
    assert normalize_status(" Delivered ") == "delivered"
    for tab in STATUS_TABS:
        assert backend_status_for_tab(tab) in ORDER_STATUSES


@pytest.mark.parametrize("tab", [None, "", "all", "ALL"])
def test_all_tab_means_no_status_filter(tab: str | None) -> None:
    assert backend_status_for_tab(tab) is None
    assert OrderFilter(status=tab).includes_status("return_rejected")


@pytest.mark.parametrize("status", ORDER_STATUSES)
def test_every_status_has_display_projections(status: str) -> None:
    assert format_status(status)
    assert csv_status_label(status)
    assert status_variant(status) in {"neutral", "positive", "negative"}


def test_specific_labels() -> None:
    assert format_status("out_for_delivery") == "Out for Delivery"
    assert format_status("returned") == "Return Requests"
    assert csv_status_label("out_for_delivery") == "Out for delivery"
    assert status_variant("delivered") == "positive"
    assert status_variant("cancelled") == "negative"


def test_unknown_status_is_not_displayed() -> None:
    with pytest.raises(ValueError):
        format_status("shipped")


def test_order_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError):
        Order.model_validate({"id": "o1", "orderNumber": "N1", "status": "shipped"})


def test_order_accepts_dashed_status_and_defaults_delivery_mode() -> None:
    order = Order.model_validate(
        {"id": "o1", "orderNumber": "ORD-000012345678", "status": "in-progress", "deliveryMode": None}
    )
    assert order.status == "assigned"
    assert order.delivery_mode == "home_delivery"
    assert order.short_number == "12345678"
