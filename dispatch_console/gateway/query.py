"""Encoding of list/export filters into the backend query contract."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dispatch_console.core.domain.types import OrderFilter

DATE_FORMAT = "%Y-%m-%d"


def build_list_params(
    order_filter: OrderFilter,
    *,
    page: int,
    limit: int,
    export: bool = False,
) -> dict[str, str]:
    """Return query parameters for ``GET /api/orders``.

    Optional filters are omitted rather than sent empty; the status filter
    is translated from tab names to the backend vocabulary.
    """
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    params: dict[str, str] = {"page": str(page), "limit": str(limit)}

    status = order_filter.backend_status
    if status is not None:
        params["status"] = status

    search = (order_filter.search or "").strip()
    if search:
        params["search"] = search

    if order_filter.start_date is not None:
        params["startDate"] = order_filter.start_date.strftime(DATE_FORMAT)
    if order_filter.end_date is not None:
        params["endDate"] = order_filter.end_date.strftime(DATE_FORMAT)

    if export:
        params["export"] = "true"

    return params
