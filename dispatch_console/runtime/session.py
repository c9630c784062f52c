"""Process-level collaborators used by the CLI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dispatch_console.gateway.errors import UnauthorizedError

if TYPE_CHECKING:
    from dispatch_console.core.ports.notifier import NoticeLevel
    from dispatch_console.gateway.errors import GatewayError

LOGGER = logging.getLogger(__name__)

_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class StaticTokenSession:
    """Bearer token read once at startup.

    A 401 ends the session: the token is dropped and later requests go out
    unauthenticated, so the operator has to restart with a fresh token.
    """

    def __init__(self, token: str | None) -> None:
        self._token = token
        self.expired = False

    @property
    def token(self) -> str | None:
        return self._token

    def handle_api_error(self, error: GatewayError) -> None:
        if isinstance(error, UnauthorizedError):
            LOGGER.error("Session expired; dropping token", extra={"status_code": error.status_code})
            self._token = None
            self.expired = True


class LoggingNotifier:
    """Notifier that writes user notifications to the log."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or LOGGER

    def notify(self, title: str, message: str, *, level: NoticeLevel = "info") -> None:
        self._logger.log(_LEVELS.get(level, logging.INFO), "%s: %s", title, message)
