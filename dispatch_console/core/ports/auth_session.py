"""Auth collaborator boundary.

Session management lives outside the console core. The core only needs a
bearer token and a hook to report failed responses so the session owner can
force a logout on 401.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from dispatch_console.gateway.errors import GatewayError


class AuthSession(Protocol):
    """Supplies credentials and reacts to failed gateway responses."""

    @property
    def token(self) -> str | None:
        """Current bearer token, or None when logged out."""

    def handle_api_error(self, error: GatewayError) -> None:
        """Called once for every non-2xx gateway response."""
