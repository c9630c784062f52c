"""Public API for the dispatch_console package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Actions
# ----------------------------------------------------------------------
from dispatch_console.actions.assign_saga import AssignAgentSaga, AssignOutcome
from dispatch_console.actions.dialogs import (
    AssignAgentDialog,
    CancelOrderDialog,
    ReturnOrderDialog,
)

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from dispatch_console.core.domain.display import (
    csv_status_label,
    format_status,
    status_variant,
)
from dispatch_console.core.domain.transitions import (
    TransitionContext,
    TransitionDecision,
    can_transition,
    plan_transition,
)
from dispatch_console.core.domain.types import (
    ORDER_STATUSES,
    STATUS_TABS,
    Agent,
    Order,
    OrderFilter,
    OrderPage,
    OrderPatch,
    apply_patch,
)

# ----------------------------------------------------------------------
# Gateway
# ----------------------------------------------------------------------
from dispatch_console.gateway.errors import (
    GatewayError,
    MalformedResponseError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from dispatch_console.gateway.order_gateway import OrderGateway

# ----------------------------------------------------------------------
# Live updates
# ----------------------------------------------------------------------
from dispatch_console.live.channel import LiveUpdateChannel
from dispatch_console.live.connection import PushConnection
from dispatch_console.live.decoder import decode_order_event
from dispatch_console.live.websocket_transport import WebSocketPushTransport

# ----------------------------------------------------------------------
# Runtime
# ----------------------------------------------------------------------
from dispatch_console.runtime.config import ConsoleConfig, load_config
from dispatch_console.sync.coalescer import RefreshCoalescer
from dispatch_console.sync.coordinator import MutationResult, ViewStateCoordinator

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Domain
    "ORDER_STATUSES",
    "STATUS_TABS",
    "Agent",
    "Order",
    "OrderFilter",
    "OrderPage",
    "OrderPatch",
    "apply_patch",
    "TransitionContext",
    "TransitionDecision",
    "can_transition",
    "plan_transition",
    "format_status",
    "csv_status_label",
    "status_variant",

    # Gateway
    "OrderGateway",
    "GatewayError",
    "UnauthorizedError",
    "TransportError",
    "MalformedResponseError",
    "ValidationError",

    # Live updates
    "PushConnection",
    "WebSocketPushTransport",
    "LiveUpdateChannel",
    "decode_order_event",

    # View state
    "ViewStateCoordinator",
    "MutationResult",
    "RefreshCoalescer",

    # Actions
    "AssignAgentSaga",
    "AssignOutcome",
    "AssignAgentDialog",
    "CancelOrderDialog",
    "ReturnOrderDialog",

    # Config
    "ConsoleConfig",
    "load_config",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("dispatch-console")
except PackageNotFoundError:
    __version__ = "0.0.0"
