"""Push event decoder.

Turns raw push events into ``OrderPatch`` values. Each event name maps to a
canonical kind; the payload is validated by the model for that kind through
a discriminated union, so every kind declares exactly the fields it may
carry. Unknown names and malformed payloads are logged and dropped.

Payloads arrive either wrapped in an envelope ``{"data": {...},
"timestamp": ..., "type": ...}`` or flat.
"""

# pylint: disable=missing-class-docstring
from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from dispatch_console.core.domain.types import AgentRef, OrderPatch, as_utc, normalize_status

LOGGER = logging.getLogger(__name__)

# Event name -> canonical patch kind. Legacy underscore names are still
# emitted by older backend builds.
EVENT_KINDS: dict[str, str] = {
    "order:created": "created",
    "order:status-updated": "status_updated",
    "order:assigned": "assigned",
    "order:delivered": "delivered",
    "order_created": "created",
    "order_updated": "updated",
    "order_deleted": "deleted",
    "payment_updated": "payment_updated",
}

ORDER_EVENT_NAMES: tuple[str, ...] = tuple(EVENT_KINDS)

_EVENT_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
    frozen=True,
)


class _OrderEventBody(BaseModel):
    order_id: str | None = Field(
        default=None,
        min_length=1,
        validation_alias=AliasChoices("orderId", "order_id", "id"),
    )
    order_number: str | None = Field(default=None, min_length=1)
    timestamp: datetime | None = None

    model_config = _EVENT_CONFIG

    @model_validator(mode="after")
    def validate_identity(self) -> _OrderEventBody:
        if self.order_id is None and self.order_number is None:
            raise ValueError("event carries neither orderId nor orderNumber")
        return self

    def _identity(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.order_id is not None:
            fields["order_id"] = self.order_id
        if self.order_number is not None:
            fields["order_number"] = self.order_number
        if self.timestamp is not None:
            fields["occurred_at"] = as_utc(self.timestamp)
        return fields

    @staticmethod
    def _present(**values: Any) -> dict[str, Any]:
        return {name: value for name, value in values.items() if value is not None}


class _AgentFields(BaseModel):
    agent_id: str | None = Field(
        default=None,
        min_length=1,
        validation_alias=AliasChoices("assignedAgentId", "agentId", "agent_id"),
    )
    agent_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("agentName", "agent_name"),
    )

    def _agent(self) -> AgentRef | None:
        if self.agent_id is None:
            return None
        return AgentRef(id=self.agent_id, name=self.agent_name)


class OrderCreatedEvent(_OrderEventBody):
    kind: Literal["created"]
    status: str = "pending"
    created_at: datetime | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_email: str | None = None

    def to_patch(self) -> OrderPatch:
        # Customer details let the coordinator match the active search.
        return OrderPatch(
            kind=self.kind,
            status=self.status,
            **self._present(
                created_at=as_utc(self.created_at) if self.created_at else None,
                customer_name=self.customer_name,
                customer_phone=self.customer_phone,
                customer_email=self.customer_email,
            ),
            **self._identity(),
        )


class OrderStatusUpdatedEvent(_OrderEventBody):
    kind: Literal["status_updated"]
    status: str
    reason: str | None = None

    def to_patch(self) -> OrderPatch:
        extra: dict[str, Any] = {}
        if self.reason:
            # The reason of a return request is kept separately from admin notes.
            if normalize_status(self.status) == "returned":
                extra["return_reason"] = self.reason
            else:
                extra["admin_notes"] = self.reason
        return OrderPatch(kind=self.kind, status=self.status, **extra, **self._identity())


class OrderAssignedEvent(_OrderEventBody, _AgentFields):
    kind: Literal["assigned"]
    status: str | None = None

    model_config = _EVENT_CONFIG

    @model_validator(mode="after")
    def validate_agent(self) -> OrderAssignedEvent:
        if self.agent_id is None:
            raise ValueError("assignment event without agent id")
        return self

    def to_patch(self) -> OrderPatch:
        return OrderPatch(
            kind=self.kind,
            assigned_agent=self._agent(),
            **self._present(status=self.status),
            **self._identity(),
        )


class OrderDeliveredEvent(_OrderEventBody):
    kind: Literal["delivered"]
    delivered_at: datetime | None = None
    delivery_proof: str | None = Field(
        default=None,
        validation_alias=AliasChoices("deliveryProof", "deliveryProofImage"),
    )
    delivery_note: str | None = None
    payment_received: bool | None = None

    def to_patch(self) -> OrderPatch:
        delivered_at = self.delivered_at or self.timestamp
        return OrderPatch(
            kind=self.kind,
            status="delivered",
            **self._present(
                delivered_at=as_utc(delivered_at) if delivered_at else None,
                delivery_proof_image=self.delivery_proof,
                delivery_note=self.delivery_note,
                payment_received=self.payment_received,
            ),
            **self._identity(),
        )


class OrderUpdatedEvent(_OrderEventBody, _AgentFields):
    kind: Literal["updated"]
    status: str | None = None
    payment_received: bool | None = None
    payment_status: str | None = None
    admin_notes: str | None = None

    model_config = _EVENT_CONFIG

    def to_patch(self) -> OrderPatch:
        return OrderPatch(
            kind=self.kind,
            **self._present(
                status=self.status,
                assigned_agent=self._agent(),
                payment_received=self.payment_received,
                payment_status=self.payment_status,
                admin_notes=self.admin_notes,
            ),
            **self._identity(),
        )


class OrderDeletedEvent(_OrderEventBody):
    kind: Literal["deleted"]

    def to_patch(self) -> OrderPatch:
        return OrderPatch(kind=self.kind, **self._identity())


class PaymentUpdatedEvent(_OrderEventBody):
    kind: Literal["payment_updated"]
    payment_received: bool | None = None
    payment_status: str | None = None

    @model_validator(mode="after")
    def validate_payment(self) -> PaymentUpdatedEvent:
        if self.payment_received is None and self.payment_status is None:
            raise ValueError("payment event without payment fields")
        return self

    def to_patch(self) -> OrderPatch:
        return OrderPatch(
            kind=self.kind,
            **self._present(
                payment_received=self.payment_received,
                payment_status=self.payment_status,
            ),
            **self._identity(),
        )


OrderEvent = Annotated[
    Union[
        OrderCreatedEvent,
        OrderStatusUpdatedEvent,
        OrderAssignedEvent,
        OrderDeliveredEvent,
        OrderUpdatedEvent,
        OrderDeletedEvent,
        PaymentUpdatedEvent,
    ],
    Field(discriminator="kind"),
]

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(OrderEvent)


def _unwrap(payload: Any) -> dict[str, Any] | None:
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict):
        body = dict(data)
        if payload.get("timestamp") is not None:
            body["timestamp"] = payload["timestamp"]
        return body
    return dict(payload)


def decode_order_event(name: str, payload: Any) -> OrderPatch | None:
    """Decode one push event, or return None when it must be dropped."""
    kind = EVENT_KINDS.get(name)
    if kind is None:
        LOGGER.info("Ignoring unknown push event", extra={"event_name": name})
        return None

    body = _unwrap(payload)
    if body is None:
        LOGGER.warning(
            "Dropping push event with non-object payload",
            extra={"event_name": name, "payload_type": type(payload).__name__},
        )
        return None

    body["kind"] = kind
    try:
        event = _EVENT_ADAPTER.validate_python(body)
        return event.to_patch()
    except PydanticValidationError as exc:
        LOGGER.warning(
            "Dropping malformed push event",
            extra={"event_name": name, "errors": exc.errors(include_url=False)},
        )
        return None
