"""Core shared data models.

This module defines the canonical Pydantic models for orders, agents, list
queries and live-update patches. The backend speaks camelCase JSON; models
expose snake_case attributes and accept either spelling on input.
"""

# pylint: disable=missing-class-docstring,missing-function-docstring
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Status vocabulary
# ---------------------------------------------------------------------------

OrderStatus = Literal[
    "pending",
    "confirmed",
    "assigned",
    "out_for_delivery",
    "delivered",
    "cancelled",
    "returned",
    "return_approved",
    "return_rejected",
]

ORDER_STATUSES: tuple[str, ...] = (
    "pending",
    "confirmed",
    "assigned",
    "out_for_delivery",
    "delivered",
    "cancelled",
    "returned",
    "return_approved",
    "return_rejected",
)

DeliveryMode = Literal["home_delivery", "pickup"]

# Tabs shown by the orders screen, in display order. Two of them use UI
# spellings that differ from the backend vocabulary.
STATUS_TABS: tuple[str, ...] = (
    "pending",
    "confirmed",
    "in-progress",
    "out-for-delivery",
    "delivered",
    "cancelled",
    "returned",
)

_STATUS_ALIASES: dict[str, str] = {
    "in-progress": "assigned",
    "out-for-delivery": "out_for_delivery",
    "return-approved": "return_approved",
    "return-rejected": "return_rejected",
}


def normalize_status(value: Any) -> Any:
    """Map UI/legacy spellings onto the backend status vocabulary."""
    if not isinstance(value, str):
        return value
    key = value.strip().lower()
    return _STATUS_ALIASES.get(key, key)


def backend_status_for_tab(tab: str | None) -> str | None:
    """Translate a tab name into the backend status filter (None means all)."""
    if tab is None:
        return None
    key = tab.strip().lower()
    if not key or key == "all":
        return None
    return normalize_status(key)


_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
)


# ---------------------------------------------------------------------------
# Parties
# ---------------------------------------------------------------------------


class AgentRef(BaseModel):
    """Agent details denormalized onto an order at assignment time."""

    id: str = Field(..., min_length=1)
    name: str | None = None
    phone: str | None = None
    vehicle_number: str | None = None

    model_config = _WIRE_CONFIG


class AgencyRef(BaseModel):
    id: str = Field(..., min_length=1)
    name: str | None = None
    status: str | None = None

    model_config = _WIRE_CONFIG


class Agent(BaseModel):
    """Delivery agent as listed by the agents endpoint."""

    id: str = Field(..., min_length=1)
    name: str
    phone: str | None = None
    vehicle_number: str | None = None
    status: Literal["online", "offline"] = "offline"
    agency: AgencyRef | None = Field(
        default=None,
        validation_alias=AliasChoices("Agency", "agency"),
    )

    model_config = _WIRE_CONFIG

    @field_validator("status", mode="before")
    @classmethod
    def _lower_status(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def is_online(self) -> bool:
        return self.status == "online"

    def as_ref(self) -> AgentRef:
        return AgentRef(
            id=self.id,
            name=self.name,
            phone=self.phone,
            vehicle_number=self.vehicle_number,
        )


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------


class OrderItem(BaseModel):
    product_id: str | None = None
    product_name: str
    variant_label: str | None = None
    variant_price: Decimal | None = None
    quantity: int = Field(..., ge=0)
    total: Decimal | None = None

    model_config = _WIRE_CONFIG


# Lifecycle timestamps in the order they are set. Pickup orders skip the
# agent stages entirely.
_DELIVERY_TIMELINE: tuple[str, ...] = (
    "confirmed_at",
    "assigned_at",
    "out_for_delivery_at",
    "delivered_at",
)
_PICKUP_TIMELINE: tuple[str, ...] = ("confirmed_at", "delivered_at")


class Order(BaseModel):
    """Working copy of a backend order."""

    id: str = Field(..., min_length=1)
    order_number: str = Field(..., min_length=1)

    status: OrderStatus
    delivery_mode: DeliveryMode = "home_delivery"
    payment_method: str | None = None
    payment_status: str | None = None
    payment_received: bool = False

    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None

    assigned_agent: AgentRef | None = None
    agency: AgencyRef | None = None

    items: list[OrderItem] = Field(default_factory=list)
    subtotal: Decimal | None = None
    tax_amount: Decimal | None = None
    platform_charge: Decimal | None = None
    delivery_charge: Decimal | None = None
    coupon_code: str | None = None
    coupon_discount: Decimal | None = None
    total_amount: Decimal = Decimal("0")

    created_at: datetime | None = None
    updated_at: datetime | None = None
    confirmed_at: datetime | None = None
    assigned_at: datetime | None = None
    out_for_delivery_at: datetime | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    cancelled_by_name: str | None = None
    returned_at: datetime | None = None
    returned_by: str | None = None
    returned_by_name: str | None = None
    return_reason: str | None = None

    admin_notes: str | None = None
    agent_notes: str | None = None

    delivery_proof_image: str | None = None
    delivery_note: str | None = None

    model_config = _WIRE_CONFIG

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        return normalize_status(value)

    @field_validator("delivery_mode", mode="before")
    @classmethod
    def _default_delivery_mode(cls, value: Any) -> Any:
        return "home_delivery" if value is None else value

    @property
    def short_number(self) -> str:
        """Human-facing order number (last 8 characters)."""
        return self.order_number[-8:]

    @property
    def is_pickup(self) -> bool:
        return self.delivery_mode == "pickup"

    def lifecycle_violations(self) -> list[str]:
        """Return best-effort descriptions of broken lifecycle invariants.

        The backend owns the record, so this never raises; callers surface
        the result for observability.
        """
        violations: list[str] = []

        timeline = _PICKUP_TIMELINE if self.is_pickup else _DELIVERY_TIMELINE
        missing: str | None = None
        previous: tuple[str, datetime] | None = None
        for field_name in timeline:
            value = getattr(self, field_name)
            if value is None:
                missing = missing or field_name
                continue
            if missing is not None:
                violations.append(f"{field_name} set without {missing}")
            if previous is not None and as_utc(value) < as_utc(previous[1]):
                violations.append(f"{field_name} precedes {previous[0]}")
            previous = (field_name, value)

        if self.status == "out_for_delivery" and self.assigned_agent is None:
            violations.append("out_for_delivery without assigned agent")

        if self.payment_received and not self.is_pickup:
            violations.append("payment_received set on home delivery")

        return violations


# ---------------------------------------------------------------------------
# List queries
# ---------------------------------------------------------------------------


class Pagination(BaseModel):
    current_page: int = Field(1, ge=1)
    total_pages: int = Field(1, ge=0)
    total_items: int = Field(0, ge=0)

    model_config = _WIRE_CONFIG


class OrderPage(BaseModel):
    orders: list[Order] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    model_config = _WIRE_CONFIG


class OrderFilter(BaseModel):
    """Active list filter. ``status`` holds a tab name or backend status."""

    status: str | None = None
    search: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def validate_date_range(self) -> OrderFilter:
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self

    @property
    def backend_status(self) -> str | None:
        return backend_status_for_tab(self.status)

    def with_status(self, status: str | None) -> OrderFilter:
        return self.model_copy(update={"status": status})

    def includes_status(self, status: str | None) -> bool:
        """Return True if an order in ``status`` belongs to this filter's tab."""
        wanted = self.backend_status
        if wanted is None:
            return True
        return normalize_status(status) == wanted

    def matches_new_order(self, patch: OrderPatch) -> bool:
        """Return True if the order announced by a ``created`` patch would be listed.

        Status and creation date are checked against the patch. The search
        text is checked only when the patch carries the customer details;
        a criterion the payload cannot answer never excludes the order.
        Dates are compared in UTC.
        """
        if not self.includes_status(patch.status or "pending"):
            return False

        created = patch.created_at or patch.occurred_at
        if created is not None:
            day = as_utc(created).date()
            if self.start_date is not None and day < self.start_date:
                return False
            if self.end_date is not None and day > self.end_date:
                return False

        needle = (self.search or "").strip().lower()
        if needle and patch.customer_name is not None:
            searchable = (
                patch.order_number,
                patch.customer_name,
                patch.customer_phone,
                patch.customer_email,
            )
            return any(needle in value.lower() for value in searchable if value)
        return True


# ---------------------------------------------------------------------------
# Live-update patches
# ---------------------------------------------------------------------------

PatchKind = Literal[
    "created",
    "status_updated",
    "assigned",
    "delivered",
    "updated",
    "deleted",
    "payment_updated",
]

_PATCH_META_FIELDS: frozenset[str] = frozenset(
    {"kind", "order_id", "order_number", "occurred_at"}
)


class OrderPatch(BaseModel):
    """Normalized partial order update produced from one push event.

    Only fields explicitly set are applied; unset fields leave the working
    copy untouched.
    """

    kind: PatchKind
    order_id: str | None = Field(default=None, min_length=1)
    order_number: str | None = Field(default=None, min_length=1)
    occurred_at: datetime | None = None

    status: OrderStatus | None = None
    created_at: datetime | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None
    assigned_agent: AgentRef | None = None
    payment_received: bool | None = None
    payment_status: str | None = None
    admin_notes: str | None = None
    delivered_at: datetime | None = None
    delivery_proof_image: str | None = None
    delivery_note: str | None = None
    cancelled_at: datetime | None = None
    returned_at: datetime | None = None
    return_reason: str | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        return normalize_status(value)

    @model_validator(mode="after")
    def validate_identity(self) -> OrderPatch:
        if self.order_id is None and self.order_number is None:
            raise ValueError("patch requires order_id or order_number")
        return self

    def order_fields(self) -> dict[str, Any]:
        """Return the order attributes carried by this patch."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in _PATCH_META_FIELDS
        }

    def matches(self, order: Order) -> bool:
        if self.order_id is not None:
            return self.order_id == order.id
        return self.order_number == order.order_number


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_stale(order: Order, patch: OrderPatch) -> bool:
    """True when the patch describes a state older than the working copy."""
    if patch.occurred_at is None or order.updated_at is None:
        return False
    return as_utc(patch.occurred_at) < as_utc(order.updated_at)


def apply_patch(order: Order, patch: OrderPatch) -> Order:
    """Merge a patch into an order. Applying the same patch twice is a no-op.

    Returns ``order`` itself when the patch changes nothing.
    """
    updates = {
        name: value
        for name, value in patch.order_fields().items()
        if getattr(order, name) != value
    }
    if patch.occurred_at is not None:
        if order.updated_at is None or as_utc(patch.occurred_at) > as_utc(order.updated_at):
            updates["updated_at"] = patch.occurred_at
    if not updates:
        return order
    return order.model_copy(update=updates)
