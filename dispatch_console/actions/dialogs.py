"""Action dialogs.

Headless state for the cancel, return and assign dialogs. Each dialog
validates its input locally and keeps an inline ``error`` instead of
calling the server when the input is incomplete.
"""

# pylint: disable=missing-function-docstring
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from dispatch_console.core.domain.reject_reasons import RejectReason

if TYPE_CHECKING:
    from dispatch_console.actions.assign_saga import AssignOutcome
    from dispatch_console.core.domain.types import Agent, Order
    from dispatch_console.sync.coordinator import MutationResult, ViewStateCoordinator

LOGGER = logging.getLogger(__name__)

OTHER_REASON = "Other"

CANCELLATION_REASONS: tuple[str, ...] = (
    "Customer requested cancellation",
    "Incorrect order details",
    "Item out of stock",
    "Delivery address not serviceable",
    OTHER_REASON,
)

RETURN_REASONS: tuple[str, ...] = (
    "Gas leak reported",
    "Damaged cylinder",
    "Wrong product delivered",
    "Customer changed mind",
    OTHER_REASON,
)

SPECIFY_REASON_ERROR = "Please specify the reason in the text box."


class _ReasonDialog:
    """Reason picker with a free-text "Other" option."""

    reasons: tuple[str, ...] = ()
    target_status = ""
    missing_reason_error = ""

    def __init__(self, coordinator: ViewStateCoordinator, order: Order) -> None:
        self._coordinator = coordinator
        self.order = order
        self.selected_reason: str | None = None
        self.other_reason = ""
        self.error: str | None = None

    def select_reason(self, reason: str) -> None:
        if reason not in self.reasons:
            raise ValueError(f"Unknown reason: {reason!r}")
        self.selected_reason = reason
        if reason != OTHER_REASON:
            self.other_reason = ""
        self.error = None

    def set_other_reason(self, text: str) -> None:
        self.other_reason = text
        self.error = None

    def final_reason(self) -> str | None:
        """Reason sent to the server, or None while the input is incomplete."""
        if self.selected_reason is None:
            return None
        if self.selected_reason == OTHER_REASON:
            text = self.other_reason.strip()
            return text or None
        return self.selected_reason

    def _validate(self) -> str | None:
        if self.selected_reason is None:
            self.error = self.missing_reason_error
            return None
        reason = self.final_reason()
        if reason is None:
            self.error = SPECIFY_REASON_ERROR
            return None
        self.error = None
        return reason

    def reset(self) -> None:
        self.selected_reason = None
        self.other_reason = ""
        self.error = None

    async def confirm(self) -> MutationResult | None:
        """Send the status change, or return None and set ``error``."""
        reason = self._validate()
        if reason is None:
            return None
        result = await self._coordinator.mutate_status(self.order, self.target_status, reason)
        if result.ok:
            self.reset()
        return result


class CancelOrderDialog(_ReasonDialog):
    reasons = CANCELLATION_REASONS
    target_status = "cancelled"
    missing_reason_error = "Please select a reason for cancellation."


class ReturnOrderDialog(_ReasonDialog):
    """Return request. Only offered for delivered orders."""

    reasons = RETURN_REASONS
    target_status = "returned"
    missing_reason_error = "Please select a reason for the return."

    def __init__(self, coordinator: ViewStateCoordinator, order: Order) -> None:
        if order.status != "delivered":
            raise ValueError(RejectReason.RETURN_NOT_OFFERED)
        super().__init__(coordinator, order)

    @staticmethod
    def is_offered(order: Order) -> bool:
        return order.status == "delivered"


class AssignAgentDialog:
    """Agent picker limited to online agents."""

    def __init__(
        self,
        coordinator: ViewStateCoordinator,
        order: Order,
        agents: Iterable[Agent] = (),
    ) -> None:
        self._coordinator = coordinator
        self.order = order
        self._agents: dict[str, Agent] = {}
        self.error: str | None = None
        # Pre-select the current agent when re-assigning.
        self.selected_agent_id: str | None = (
            order.assigned_agent.id if order.assigned_agent is not None else None
        )
        self.update_agents(agents)

    @property
    def available_agents(self) -> list[Agent]:
        return [agent for agent in self._agents.values() if agent.is_online]

    @property
    def empty_message(self) -> str | None:
        return None if self.available_agents else "No agents are online."

    def update_agents(self, agents: Iterable[Agent]) -> None:
        """Apply the latest agent list, e.g. after an agent status push."""
        for agent in agents:
            self._agents[agent.id] = agent
        if self.selected_agent_id is not None:
            selected = self._agents.get(self.selected_agent_id)
            if selected is not None and not selected.is_online:
                LOGGER.info(
                    "Selected agent went offline",
                    extra={"order_id": self.order.id, "agent_id": selected.id},
                )
                self.selected_agent_id = None

    def select_agent(self, agent_id: str) -> None:
        agent = self._agents.get(agent_id)
        if agent is None or not agent.is_online:
            raise ValueError(f"Agent {agent_id!r} is not available")
        self.selected_agent_id = agent_id
        self.error = None

    @property
    def can_confirm(self) -> bool:
        return self.selected_agent_id is not None

    async def confirm(self) -> AssignOutcome | None:
        if self.selected_agent_id is None:
            self.error = "Select an online agent."
            return None
        return await self._coordinator.assign_agent(self.order, self.selected_agent_id)
