"""Remote order gateway.

Typed request functions over the backend REST API. The gateway performs no
retries: a failed call raises once and the caller decides what the user
sees. Every non-2xx response is reported to the auth collaborator before
the error is raised.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dispatch_console.core.domain.reject_reasons import RejectReason
from dispatch_console.core.domain.types import (
    ORDER_STATUSES,
    Agent,
    Order,
    OrderFilter,
    OrderPage,
)
from dispatch_console.gateway.csv_export import DEFAULT_CURRENCY_TOKEN, render_orders_csv
from dispatch_console.gateway.errors import (
    GatewayError,
    MalformedResponseError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from dispatch_console.gateway.query import build_list_params

if TYPE_CHECKING:
    from dispatch_console.core.ports.auth_session import AuthSession
    from dispatch_console.runtime.metrics import ConsoleMetrics

LOGGER = logging.getLogger(__name__)

ORDERS_PATH = "/api/orders"
AGENTS_PATH = "/api/delivery-agents"

DEFAULT_EXPORT_LIMIT = 10_000


class OrderGateway:
    """Async client for the order endpoints.

    The ``httpx.AsyncClient`` is owned by the caller and must be configured
    with the API ``base_url``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        auth: AuthSession,
        *,
        export_limit: int = DEFAULT_EXPORT_LIMIT,
        currency_token: str = DEFAULT_CURRENCY_TOKEN,
        metrics: ConsoleMetrics | None = None,
    ) -> None:
        if export_limit < 1:
            raise ValueError(f"export_limit must be >= 1, got {export_limit}")
        self._client = client
        self._auth = auth
        self._export_limit = export_limit
        self._currency_token = currency_token
        self._metrics = metrics

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def list_orders(
        self,
        order_filter: OrderFilter | None = None,
        *,
        page: int = 1,
        limit: int = 10,
    ) -> OrderPage:
        params = build_list_params(order_filter or OrderFilter(), page=page, limit=limit)
        data = await self._data("list_orders", "GET", ORDERS_PATH, params=params)
        return self._parse(OrderPage, data)

    async def get_order(self, order_id: str) -> Order:
        data = await self._data("get_order", "GET", f"{ORDERS_PATH}/{order_id}")
        order = self._order_from(data)
        if order is None:
            raise MalformedResponseError("Order payload missing", error="malformed_response")
        return order

    async def set_status(self, order_id: str, status: str, notes: str | None = None) -> Order | None:
        """Single mutation endpoint for every status transition.

        Returns the updated order when the server echoes it.
        """
        if status not in ORDER_STATUSES:
            raise ValidationError(RejectReason.UNKNOWN_STATUS, f"Unknown order status: {status!r}")

        body: dict[str, Any] = {"status": status}
        if notes:
            body["adminNotes"] = notes

        data = await self._data("set_status", "PUT", f"{ORDERS_PATH}/{order_id}/status", json=body)
        return self._order_from(data)

    async def assign_agent(self, order_id: str, agent_id: str) -> Order | None:
        """Assign an agent. Does not advance the status by itself."""
        if not agent_id:
            raise ValidationError(RejectReason.AGENT_REQUIRED, "Select an agent to assign.")

        data = await self._data(
            "assign_agent",
            "PUT",
            f"{ORDERS_PATH}/{order_id}/assign",
            json={"agentId": agent_id},
        )
        return self._order_from(data)

    async def set_payment_received(
        self,
        order_id: str,
        received: bool,
        notes: str,
        *,
        delivery_mode: str | None = None,
    ) -> Order | None:
        """Toggle counter payment for a pickup order."""
        if delivery_mode is not None and delivery_mode != "pickup":
            raise ValidationError(
                RejectReason.PICKUP_ONLY,
                "Payment can only be recorded here for pickup orders.",
            )

        data = await self._data(
            "set_payment_received",
            "PUT",
            f"{ORDERS_PATH}/{order_id}/payment",
            json={"paymentReceived": bool(received), "notes": notes},
        )
        return self._order_from(data)

    async def export_orders(self, order_filter: OrderFilter | None = None) -> bytes:
        """Return all orders matching the filter as CSV bytes.

        The server is asked for one large page. If it answers with CSV the
        body is returned unchanged, otherwise the JSON list is rendered
        locally.
        """
        params = build_list_params(
            order_filter or OrderFilter(),
            page=1,
            limit=self._export_limit,
            export=True,
        )
        resp = await self._request("export_orders", "GET", ORDERS_PATH, params=params)

        content_type = resp.headers.get("content-type", "")
        if content_type.startswith("text/csv"):
            return resp.content

        data = self._unwrap("export_orders", resp)
        page = self._parse(OrderPage, data)
        return render_orders_csv(page.orders, currency_token=self._currency_token)

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    async def list_agents(self) -> list[Agent]:
        data = await self._data("list_agents", "GET", AGENTS_PATH)
        raw_agents = data.get("agents") if isinstance(data, dict) else data
        if not isinstance(raw_agents, list):
            raise MalformedResponseError("Agent list missing", error="malformed_response")
        try:
            return [Agent.model_validate(item) for item in raw_agents]
        except PydanticValidationError as exc:
            raise MalformedResponseError("Unexpected agent payload", error="malformed_response") from exc

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = self._auth.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _count(self, operation: str, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.count_request(operation, outcome)

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(),
            )
        except httpx.HTTPError as exc:
            LOGGER.warning(
                "Gateway transport failure",
                extra={"operation": operation, "path": path, "error": repr(exc)},
            )
            self._count(operation, "transport_error")
            raise TransportError(
                "Network error. Please check your connection.",
                error="transport_error",
            ) from exc

        if resp.is_success:
            self._count(operation, "ok")
            return resp

        error = self._error_from_response(resp)
        LOGGER.warning(
            "Gateway request failed",
            extra={"operation": operation, "status_code": resp.status_code, "error": error.error},
        )
        self._count(operation, "http_error")
        self._auth.handle_api_error(error)
        raise error

    @staticmethod
    def _error_from_response(resp: httpx.Response) -> GatewayError:
        error_text: str | None = None
        message: str | None = None
        try:
            body = resp.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            raw_error = body.get("error")
            raw_message = body.get("message")
            error_text = str(raw_error) if raw_error else None
            message = str(raw_message) if raw_message else None

        error_cls = UnauthorizedError if resp.status_code == 401 else GatewayError
        return error_cls(message or error_text, status_code=resp.status_code, error=error_text)

    def _unwrap(self, operation: str, resp: httpx.Response) -> Any:
        try:
            body = resp.json()
        except ValueError as exc:
            raise MalformedResponseError(
                "Response is not valid JSON",
                status_code=resp.status_code,
                error="malformed_response",
            ) from exc

        if not isinstance(body, dict):
            raise MalformedResponseError(
                "Response envelope is not an object",
                status_code=resp.status_code,
                error="malformed_response",
            )

        if body.get("success") is False:
            LOGGER.info("Gateway envelope reported failure", extra={"operation": operation})
            raw_error = body.get("error")
            raise GatewayError(
                body.get("message") or raw_error,
                status_code=resp.status_code,
                error=str(raw_error) if raw_error else None,
            )

        return body.get("data")

    async def _data(self, operation: str, method: str, path: str, **kwargs: Any) -> Any:
        resp = await self._request(operation, method, path, **kwargs)
        return self._unwrap(operation, resp)

    @staticmethod
    def _parse(model: type[BaseModel], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except PydanticValidationError as exc:
            raise MalformedResponseError(
                f"Unexpected {model.__name__} payload",
                error="malformed_response",
            ) from exc

    @classmethod
    def _order_from(cls, data: Any) -> Order | None:
        if not isinstance(data, dict):
            return None
        raw = data.get("order", data)
        if not isinstance(raw, dict) or "id" not in raw:
            return None
        return cls._parse(Order, raw)
