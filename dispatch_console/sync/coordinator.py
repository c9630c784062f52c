"""View-state coordinator.

Owns the working set shown by the orders screen (current page, pagination,
per-tab counts, active filter, row locks) and is the only writer of that
state. User actions go through the transition engine and the gateway;
push events are merged through ``apply_remote_update``.

Concurrency model: everything runs on one event loop. Page loads carry a
sequence token and only the latest issued load may replace the working
set. Row locks are per order id, so actions on different rows may overlap
while a second action on a locked row is ignored.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from dispatch_console.core.domain.display import format_status
from dispatch_console.core.domain.reject_reasons import RejectReason
from dispatch_console.core.domain.transitions import (
    TransitionContext,
    can_transition,
    plan_transition,
)
from dispatch_console.core.domain.types import (
    STATUS_TABS,
    Order,
    OrderFilter,
    OrderPage,
    OrderPatch,
    Pagination,
    apply_patch,
    is_stale,
    normalize_status,
)
from dispatch_console.core.events.events import (
    LifecycleViolationEvent,
    LiveUpdateEvent,
    StatusMutationEvent,
    WorkingSetRefreshEvent,
)
from dispatch_console.core.events.sinks.null_event_bus import NullEventBus
from dispatch_console.gateway.errors import GatewayError, ValidationError
from dispatch_console.sync.coalescer import DEFAULT_WINDOW_S, RefreshCoalescer

if TYPE_CHECKING:
    from dispatch_console.actions.assign_saga import AssignOutcome
    from dispatch_console.core.events.event_bus import EventBus
    from dispatch_console.core.ports.notifier import Notifier
    from dispatch_console.core.ports.pickup_prompt import PickupPrompt
    from dispatch_console.gateway.order_gateway import OrderGateway
    from dispatch_console.runtime.metrics import ConsoleMetrics

LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10

PAYMENT_RECEIVED_NOTE = "Payment received in cash at counter"
PAYMENT_NOT_COLLECTED_NOTE = "Customer did not come for pickup"

STATUS_FAILED_MESSAGE = "Failed to update status."
PAYMENT_FAILED_MESSAGE = "Failed to update payment status."
LOAD_FAILED_MESSAGE = "Failed to fetch orders."

_REJECT_MESSAGES: dict[str, str] = {
    RejectReason.UNKNOWN_STATUS: "Unknown order status.",
    RejectReason.SAME_STATUS: "Order already has this status.",
    RejectReason.TERMINAL_STATUS: "Order is closed and can no longer change.",
    RejectReason.TRANSITION_NOT_ALLOWED: "This status change is not allowed.",
    RejectReason.REASON_REQUIRED: "A reason is required for this action.",
    RejectReason.AGENT_REQUIRED: "Assign an agent first.",
    RejectReason.PICKUP_NOT_ASSIGNABLE: "Pickup orders are not assigned to agents.",
    RejectReason.PICKUP_ONLY: "Only available for pickup orders.",
    RejectReason.PICKUP_REQUIRES_CONFIRMATION: "Confirm the pickup before marking it delivered.",
    RejectReason.DELIVERY_ONLY: "Only available for home-delivery orders.",
    RejectReason.ROW_LOCKED: "An update for this order is already in progress.",
    RejectReason.RETURN_NOT_OFFERED: "Returns are only available for delivered orders.",
    RejectReason.ASSIGN_VIA_DIALOG: "Assign an agent to confirm this order.",
}


def reject_message(reason: str | None) -> str:
    return _REJECT_MESSAGES.get(reason or "", "This action is not allowed.")


@dataclass(frozen=True, slots=True)
class MutationResult:
    """Outcome of a user action on one order.

    outcome: applied | rejected | failed | ignored
    """

    outcome: str
    order_id: str
    reason: str | None = None
    message: str | None = None
    order: Order | None = None

    @property
    def ok(self) -> bool:
        return self.outcome == "applied"


class ViewStateCoordinator:
    """Single writer of the orders working set."""

    def __init__(
        self,
        gateway: OrderGateway,
        notifier: Notifier,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        event_bus: EventBus | None = None,
        metrics: ConsoleMetrics | None = None,
        pickup_prompt: PickupPrompt | None = None,
        refresh_window: float = DEFAULT_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.gateway = gateway
        self.notifier = notifier
        self._page_size = page_size
        self.event_bus = event_bus or NullEventBus()
        self._metrics = metrics
        self._pickup_prompt = pickup_prompt

        self.orders: list[Order] = []
        self.pagination = Pagination()
        self.status_counts: dict[str, int] = {tab: 0 for tab in STATUS_TABS}
        self.active_filter = OrderFilter()
        self.current_page = 1
        self.is_loading = False

        # Ordered set of locked order ids.
        self._updating: dict[str, None] = {}

        self._load_seq = 0
        self._counts_seq = 0
        self._loads_in_flight = 0

        self._page_refresh = RefreshCoalescer(
            self.load_page,
            window=refresh_window,
            clock=clock,
            sleep=sleep,
            name="page",
        )
        self._counts_refresh = RefreshCoalescer(
            self.refresh_status_counts,
            window=refresh_window,
            clock=clock,
            sleep=sleep,
            name="counts",
        )

    # ------------------------------------------------------------------
    # Row locks
    # ------------------------------------------------------------------

    @property
    def updating_order_id(self) -> str | None:
        """Most recently locked order id, or None when no row is locked."""
        if not self._updating:
            return None
        return next(reversed(self._updating))

    def is_updating(self, order_id: str) -> bool:
        return order_id in self._updating

    def acquire_row(self, order_id: str) -> bool:
        """Lock a row. Returns False when it is already locked."""
        if order_id in self._updating:
            return False
        self._updating[order_id] = None
        return True

    def release_row(self, order_id: str) -> None:
        self._updating.pop(order_id, None)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_page(self, order_filter: OrderFilter | None = None, page: int | None = None) -> bool:
        """Load a page into the working set.

        Omitted arguments keep the active filter and page. Returns True when
        the response was applied; responses of superseded loads are dropped.
        """
        if page is not None:
            if page < 1:
                raise ValueError(f"page must be >= 1, got {page}")
            self.current_page = page
        if order_filter is not None:
            if order_filter != self.active_filter and page is None:
                self.current_page = 1
            self.active_filter = order_filter

        query_filter, query_page = self.active_filter, self.current_page
        self._load_seq += 1
        seq = self._load_seq
        self._loads_in_flight += 1
        self.is_loading = True
        self._count_refresh("page")

        try:
            result: OrderPage = await self.gateway.list_orders(
                query_filter,
                page=query_page,
                limit=self._page_size,
            )
        except GatewayError as exc:
            LOGGER.warning(
                "Order page load failed",
                extra={"seq": seq, "page": query_page, "error": repr(exc)},
            )
            if seq == self._load_seq:
                self.notifier.notify("Error", LOAD_FAILED_MESSAGE, level="error")
            return False
        finally:
            self._loads_in_flight -= 1
            self.is_loading = self._loads_in_flight > 0

        applied = seq == self._load_seq
        self.event_bus.emit(
            WorkingSetRefreshEvent(
                ts_ns=time.time_ns(),
                seq=seq,
                page=query_page,
                total_items=result.pagination.total_items,
                applied=applied,
            )
        )
        if not applied:
            LOGGER.debug("Discarding superseded page load", extra={"seq": seq, "latest": self._load_seq})
            return False

        self.orders = list(result.orders)
        self.pagination = result.pagination
        self._report_lifecycle_violations(self.orders)
        return True

    async def refresh_status_counts(self, order_filter: OrderFilter | None = None) -> None:
        """Fetch per-tab totals in parallel; failed tabs keep their count.

        Counts follow the active date range only, not the search text.
        """
        base = order_filter or self.active_filter
        count_filter = OrderFilter(start_date=base.start_date, end_date=base.end_date)
        self._counts_seq += 1
        seq = self._counts_seq
        self._count_refresh("counts")

        results = await asyncio.gather(
            *(
                self.gateway.list_orders(count_filter.with_status(tab), page=1, limit=1)
                for tab in STATUS_TABS
            ),
            return_exceptions=True,
        )

        if seq != self._counts_seq:
            return

        for tab, result in zip(STATUS_TABS, results):
            if isinstance(result, GatewayError):
                LOGGER.warning("Status count failed", extra={"tab": tab, "error": repr(result)})
                continue
            if isinstance(result, BaseException):
                raise result
            self.status_counts[tab] = result.pagination.total_items

    async def refresh_after_mutation(self) -> None:
        await asyncio.gather(self.load_page(), self.refresh_status_counts())

    def _report_lifecycle_violations(self, orders: list[Order]) -> None:
        for order in orders:
            for violation in order.lifecycle_violations():
                LOGGER.warning(
                    "Order lifecycle violation",
                    extra={"order_id": order.id, "status": order.status, "violation": violation},
                )
                self.event_bus.emit(
                    LifecycleViolationEvent(
                        ts_ns=time.time_ns(),
                        order_id=order.id,
                        status=order.status,
                        violation=violation,
                    )
                )

    def _count_refresh(self, kind: str) -> None:
        if self._metrics is not None:
            self._metrics.count_refresh(kind)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def _emit_mutation(self, order: Order, target: str, outcome: str, reason: str | None = None) -> None:
        self.event_bus.emit(
            StatusMutationEvent(
                ts_ns=time.time_ns(),
                order_id=order.id,
                prev_status=order.status,
                next_status=target,
                outcome=outcome,
                reason=reason,
            )
        )

    def _reject(self, order: Order, target: str, reason: str | None) -> MutationResult:
        self._emit_mutation(order, target, "rejected", reason)
        return MutationResult(
            outcome="rejected",
            order_id=order.id,
            reason=reason,
            message=reject_message(reason),
        )

    def _ignore(self, order: Order, target: str) -> MutationResult:
        LOGGER.info("Row locked; ignoring action", extra={"order_id": order.id, "target": target})
        self._emit_mutation(order, target, "ignored", RejectReason.ROW_LOCKED)
        return MutationResult(
            outcome="ignored",
            order_id=order.id,
            reason=RejectReason.ROW_LOCKED,
            message=reject_message(RejectReason.ROW_LOCKED),
        )

    async def mutate_status(self, order: Order, status: str, notes: str | None = None) -> MutationResult:
        """Validate and send one manual status change.

        The working set is not changed optimistically; it is reloaded after
        the server accepted the change.
        """
        target = normalize_status(status)
        if self.is_updating(order.id):
            return self._ignore(order, target)

        context = TransitionContext.for_order(order, notes=notes)
        decision = can_transition(order.status, target, context)
        prompt: PickupPrompt | None = None
        if not decision.allowed:
            if decision.required_step is None or self._pickup_prompt is None:
                return self._reject(order, target, decision.reason)
            prompt = self._pickup_prompt

        if not self.acquire_row(order.id):
            return self._ignore(order, target)
        try:
            if prompt is not None:
                # The operator confirms the customer collected the order.
                if not await prompt.confirm_pickup(order):
                    return self._reject(order, target, decision.reason)
                steps = plan_transition(order.status, target, context)
                if steps is None:
                    return self._reject(order, target, decision.reason)
            else:
                steps = [(target, decision.notes)]

            return await self._run_steps(order, target, steps)
        finally:
            self.release_row(order.id)

    async def _run_steps(
        self,
        order: Order,
        target: str,
        steps: list[tuple[str, str | None]],
    ) -> MutationResult:
        updated: Order | None = None
        previous = order.status
        applied_any = False
        for step_status, step_notes in steps:
            try:
                updated = await self.gateway.set_status(order.id, step_status, step_notes)
            except (GatewayError, ValidationError) as exc:
                message = (
                    exc.message_or(STATUS_FAILED_MESSAGE) if isinstance(exc, GatewayError) else exc.message
                )
                LOGGER.warning(
                    "Status update failed",
                    extra={"order_id": order.id, "status": step_status, "error": repr(exc)},
                )
                self._emit_mutation(order, step_status, "failed", getattr(exc, "error", None))
                self.notifier.notify("Error", message, level="error")
                if applied_any:
                    await self.refresh_after_mutation()
                return MutationResult(outcome="failed", order_id=order.id, message=message)

            applied_any = True
            self.event_bus.emit(
                StatusMutationEvent(
                    ts_ns=time.time_ns(),
                    order_id=order.id,
                    prev_status=previous,
                    next_status=step_status,
                    outcome="applied",
                )
            )
            previous = step_status

        self.notifier.notify(
            "Order Status Updated",
            f"Order #{order.short_number} has been marked as {format_status(target)}.",
        )
        await self.refresh_after_mutation()
        return MutationResult(outcome="applied", order_id=order.id, order=updated)

    async def confirm_order(self, order: Order) -> MutationResult:
        """Row "Confirm" action.

        Pickup orders are confirmed directly. Home-delivery orders are
        confirmed by assigning an agent, so the caller must open the assign
        dialog instead.
        """
        if not order.is_pickup:
            return self._reject(order, "confirmed", RejectReason.ASSIGN_VIA_DIALOG)
        return await self.mutate_status(order, "confirmed")

    async def toggle_payment_received(self, order: Order, received: bool) -> MutationResult:
        """Record whether a pickup customer paid at the counter."""
        label = "payment_received" if received else "payment_not_received"
        if not order.is_pickup:
            return self._reject(order, label, RejectReason.PICKUP_ONLY)
        if not self.acquire_row(order.id):
            return self._ignore(order, label)

        notes = PAYMENT_RECEIVED_NOTE if received else PAYMENT_NOT_COLLECTED_NOTE
        try:
            try:
                updated = await self.gateway.set_payment_received(
                    order.id,
                    received,
                    notes,
                    delivery_mode=order.delivery_mode,
                )
            except GatewayError as exc:
                LOGGER.warning(
                    "Payment update failed",
                    extra={"order_id": order.id, "error": repr(exc)},
                )
                message = exc.message_or(PAYMENT_FAILED_MESSAGE)
                self.notifier.notify("Error", message, level="error")
                return MutationResult(outcome="failed", order_id=order.id, message=message)

            self.notifier.notify(
                "Payment Status Updated",
                f"Order payment status set to {'Paid' if received else 'Unpaid'}",
            )
            await self.refresh_after_mutation()
            return MutationResult(outcome="applied", order_id=order.id, order=updated)
        finally:
            self.release_row(order.id)

    async def assign_agent(self, order: Order, agent_id: str | None) -> AssignOutcome:
        """Assign an agent and advance the order to ``assigned``."""
        # Imported here: the saga module depends on this one.
        from dispatch_console.actions.assign_saga import AssignAgentSaga  # pylint: disable=import-outside-toplevel

        return await AssignAgentSaga(self).run(order, agent_id)

    # ------------------------------------------------------------------
    # Live updates
    # ------------------------------------------------------------------

    def _index_of(self, patch: OrderPatch) -> int | None:
        for index, order in enumerate(self.orders):
            if patch.matches(order):
                return index
        return None

    def apply_remote_update(self, patch: OrderPatch) -> str:
        """Merge one push patch into the working set.

        Returns: applied | noop | stale | dropped | refetch
        """
        index = self._index_of(patch)
        outcome = self._reconcile(patch, index)

        if outcome != "stale":
            self._counts_refresh.trigger(patch.kind)

        self.event_bus.emit(
            LiveUpdateEvent(
                ts_ns=time.time_ns(),
                event_name=patch.kind,
                order_id=patch.order_id,
                outcome=outcome,
            )
        )
        LOGGER.debug(
            "Remote update reconciled",
            extra={"kind": patch.kind, "order_id": patch.order_id, "outcome": outcome},
        )
        return outcome

    def _reconcile(self, patch: OrderPatch, index: int | None) -> str:
        if patch.kind == "created":
            if index is None and self.active_filter.matches_new_order(patch):
                self._page_refresh.trigger("created")
                return "refetch"
            return "noop" if index is not None else "dropped"

        if patch.kind == "deleted":
            if index is None:
                return "dropped"
            del self.orders[index]
            self._page_refresh.trigger("deleted")
            return "refetch"

        if index is None:
            return "dropped"

        current = self.orders[index]
        if is_stale(current, patch):
            return "stale"

        updated = apply_patch(current, patch)
        if updated is current:
            return "noop"
        self.orders[index] = updated

        if not self.active_filter.includes_status(updated.status):
            self._page_refresh.trigger("left_tab")
            return "refetch"
        return "applied"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for scheduled refreshes to finish."""
        await self._page_refresh.drain()
        await self._counts_refresh.drain()

    async def close(self) -> None:
        await self._page_refresh.close()
        await self._counts_refresh.close()

    def snapshot(self) -> dict[str, Any]:
        """Plain view of the working set, e.g. for the CLI."""
        return {
            "filter": self.active_filter.model_dump(mode="json"),
            "page": self.current_page,
            "orders": [order.id for order in self.orders],
            "pagination": self.pagination.model_dump(),
            "status_counts": dict(self.status_counts),
            "updating": list(self._updating),
        }
