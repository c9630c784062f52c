"""CSV rendering of orders for the export download."""

from __future__ import annotations

import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Iterable

from dispatch_console.core.domain.display import csv_status_label

if TYPE_CHECKING:
    from dispatch_console.core.domain.types import Order

EXPORT_COLUMNS: tuple[str, ...] = (
    "Order ID",
    "Customer",
    "Items",
    "Agency",
    "Delivery Mode",
    "Payment Method",
    "Agent",
    "Amount",
    "Status",
    "Date",
)

DEFAULT_CURRENCY_TOKEN = "KSH"

_CENTS = Decimal("0.01")


def format_amount(amount: Decimal | str | float, currency_token: str = DEFAULT_CURRENCY_TOKEN) -> str:
    """Plain two-decimal amount with a currency prefix, e.g. ``KSH1234.50``."""
    value = Decimal(str(amount)).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return f"{currency_token}{value:f}"


def _humanize(value: str | None) -> str:
    if not value:
        return "N/A"
    return value.replace("_", " ").capitalize()


def _items_cell(order: Order) -> str:
    parts: list[str] = []
    for item in order.items:
        label = item.product_name
        if item.variant_label:
            label = f"{label} ({item.variant_label})"
        parts.append(f"{label} x{item.quantity}")
    return "; ".join(parts)


def order_to_row(order: Order, currency_token: str = DEFAULT_CURRENCY_TOKEN) -> list[str]:
    """Return the export cells for one order, in ``EXPORT_COLUMNS`` order."""
    return [
        order.order_number,
        order.customer_name or "",
        _items_cell(order),
        order.agency.name if order.agency and order.agency.name else "N/A",
        _humanize(order.delivery_mode),
        _humanize(order.payment_method),
        order.assigned_agent.name if order.assigned_agent and order.assigned_agent.name else "Unassigned",
        format_amount(order.total_amount, currency_token),
        csv_status_label(order.status),
        order.created_at.strftime("%Y-%m-%d") if order.created_at else "",
    ]


def render_orders_csv(
    orders: Iterable[Order],
    *,
    currency_token: str = DEFAULT_CURRENCY_TOKEN,
) -> bytes:
    """Render orders as UTF-8 CSV bytes with every field quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for order in orders:
        writer.writerow(order_to_row(order, currency_token))
    return buf.getvalue().encode("utf-8")
