"""Assign-then-advance saga.

Assigning an agent is two backend calls: ``PUT /assign`` followed by a
status change to ``assigned``. The calls are not atomic; when the second
one fails the agent stays assigned and the outcome offers a retry of the
status step only.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Callable

from dispatch_console.core.domain.reject_reasons import RejectReason
from dispatch_console.core.domain.transitions import ASSIGNED_NOTE, can_assign
from dispatch_console.core.events.events import AssignmentEvent
from dispatch_console.gateway.errors import GatewayError

if TYPE_CHECKING:
    from dispatch_console.core.domain.types import Order
    from dispatch_console.sync.coordinator import ViewStateCoordinator

LOGGER = logging.getLogger(__name__)

ASSIGN_FAILED_MESSAGE = "Failed to assign agent."
STATUS_STEP_FAILED_MESSAGE = "Agent assigned, but the order status was not updated."


@dataclass(frozen=True, slots=True)
class AssignOutcome:
    """Result of one saga run.

    outcome: assigned | assigned_not_advanced | failed | rejected | ignored
    """

    outcome: str
    order_id: str
    agent_id: str | None
    reason: str | None = None
    message: str | None = None
    _retry: Callable[[], Awaitable[AssignOutcome]] | None = field(
        default=None,
        repr=False,
        compare=False,
    )

    @property
    def ok(self) -> bool:
        return self.outcome == "assigned"

    @property
    def can_retry(self) -> bool:
        return self._retry is not None

    async def retry_status_step(self) -> AssignOutcome:
        """Re-run only the status step of a partially applied assignment."""
        if self._retry is None:
            raise RuntimeError(f"nothing to retry for outcome {self.outcome!r}")
        return await self._retry()


class AssignAgentSaga:
    """Runs the two assignment steps under the coordinator's row lock."""

    def __init__(self, coordinator: ViewStateCoordinator) -> None:
        self._coordinator = coordinator
        self._gateway = coordinator.gateway
        self._notifier = coordinator.notifier
        self._event_bus = coordinator.event_bus

    def _finish(
        self,
        order: Order,
        agent_id: str | None,
        outcome: str,
        *,
        reason: str | None = None,
        message: str | None = None,
        retry: Callable[[], Awaitable[AssignOutcome]] | None = None,
    ) -> AssignOutcome:
        self._event_bus.emit(
            AssignmentEvent(
                ts_ns=time.time_ns(),
                order_id=order.id,
                agent_id=agent_id,
                outcome=outcome,
                reason=reason,
            )
        )
        return AssignOutcome(
            outcome=outcome,
            order_id=order.id,
            agent_id=agent_id,
            reason=reason,
            message=message,
            _retry=retry,
        )

    async def run(self, order: Order, agent_id: str | None) -> AssignOutcome:
        decision = can_assign(order, agent_id)
        if not decision.allowed:
            return self._finish(order, agent_id, "rejected", reason=decision.reason)
        if not self._coordinator.acquire_row(order.id):
            return self._finish(order, agent_id, "ignored", reason=RejectReason.ROW_LOCKED)
        try:
            try:
                await self._gateway.assign_agent(order.id, agent_id)
            except GatewayError as exc:
                LOGGER.warning(
                    "Agent assignment failed",
                    extra={"order_id": order.id, "agent_id": agent_id, "error": repr(exc)},
                )
                message = exc.message_or(ASSIGN_FAILED_MESSAGE)
                self._notifier.notify("Error", message, level="error")
                return self._finish(order, agent_id, "failed", reason=exc.error, message=message)

            self._notifier.notify("Agent Assigned", "Agent has been assigned to the order.")
            outcome = await self._advance(order, agent_id)
            await self._coordinator.refresh_after_mutation()
            return outcome
        finally:
            self._coordinator.release_row(order.id)

    async def _advance(self, order: Order, agent_id: str) -> AssignOutcome:
        try:
            await self._gateway.set_status(order.id, "assigned", ASSIGNED_NOTE)
        except GatewayError as exc:
            LOGGER.warning(
                "Assignment status step failed",
                extra={"order_id": order.id, "agent_id": agent_id, "error": repr(exc)},
            )
            self._notifier.notify("Error", STATUS_STEP_FAILED_MESSAGE, level="warning")

            async def _retry() -> AssignOutcome:
                return await self.retry_status_step(order, agent_id)

            return self._finish(
                order,
                agent_id,
                "assigned_not_advanced",
                reason=exc.error,
                message=STATUS_STEP_FAILED_MESSAGE,
                retry=_retry,
            )

        return self._finish(order, agent_id, "assigned")

    async def retry_status_step(self, order: Order, agent_id: str) -> AssignOutcome:
        if not self._coordinator.acquire_row(order.id):
            return self._finish(order, agent_id, "ignored", reason=RejectReason.ROW_LOCKED)
        try:
            outcome = await self._advance(order, agent_id)
            await self._coordinator.refresh_after_mutation()
            return outcome
        finally:
            self._coordinator.release_row(order.id)
