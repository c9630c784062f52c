from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from dispatch_console.core.domain.types import Order


class PickupPrompt(Protocol):
    """Blocking confirmation shown before a pending pickup order is delivered."""

    async def confirm_pickup(self, order: Order) -> bool:
        """Return True once the operator confirmed the customer collected the order."""
