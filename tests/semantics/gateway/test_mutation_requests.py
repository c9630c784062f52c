"""
Semantic test: mutation endpoints.

Invariant:
Status changes go through PUT /api/orders/{id}/status with optional
adminNotes; assignment through PUT /assign with agentId only; counter
payment through PUT /payment. Echoed orders are parsed.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import json

import httpx
import pytest

from dispatch_console.gateway.order_gateway import OrderGateway


class _Auth:
    token = None

    def handle_api_error(self, error: object) -> None:
        raise AssertionError(f"unexpected error {error!r}")


@pytest.mark.asyncio
async def test_mutation_bodies_and_echo() -> None:
    seen: list[tuple[str, str, dict]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, json.loads(request.content)))
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {"order": {"id": "o1", "orderNumber": "ORD-1", "status": "confirmed"}},
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://api.test") as client:
        gateway = OrderGateway(client, _Auth())
        echoed = await gateway.set_status("o1", "confirmed", "Order confirmed for pickup")
        await gateway.set_status("o1", "delivered")
        await gateway.assign_agent("o1", "agent-9")
        await gateway.set_payment_received("o1", True, "Payment received in cash at counter", delivery_mode="pickup")

    assert echoed is not None and echoed.status == "confirmed"
    assert seen == [
        ("PUT", "/api/orders/o1/status", {"status": "confirmed", "adminNotes": "Order confirmed for pickup"}),
        ("PUT", "/api/orders/o1/status", {"status": "delivered"}),
        ("PUT", "/api/orders/o1/assign", {"agentId": "agent-9"}),
        (
            "PUT",
            "/api/orders/o1/payment",
            {"paymentReceived": True, "notes": "Payment received in cash at counter"},
        ),
    ]


@pytest.mark.asyncio
async def test_list_agents_reads_agency_alias() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers.get("Authorization") is None
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {
                    "agents": [
                        {"id": "a1", "name": "Otieno", "status": "Online", "Agency": {"id": "ag1", "name": "Gas Hub"}},
                        {"id": "a2", "name": "Achieng", "status": "offline"},
                    ]
                },
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://api.test") as client:
        agents = await OrderGateway(client, _Auth()).list_agents()

    assert [a.is_online for a in agents] == [True, False]
    assert agents[0].agency is not None and agents[0].agency.name == "Gas Hub"
