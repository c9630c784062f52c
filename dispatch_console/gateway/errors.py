"""Error taxonomy for the order gateway and the actions built on it."""

from __future__ import annotations

GENERIC_FAILURE_MESSAGE = "Request failed. Please try again."


class ConsoleError(Exception):
    """Base class for errors surfaced by the console core."""


class ValidationError(ConsoleError):
    """Client-side validation failure. Never sent to the server."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message


class GatewayError(ConsoleError):
    """Non-2xx response, unsuccessful envelope, or unusable response.

    ``status_code`` is None when no HTTP response was received.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
        error: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.message = message or error or GENERIC_FAILURE_MESSAGE
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Server-provided message when available, else the generic fallback."""
        return self.message

    def message_or(self, fallback: str) -> str:
        """Server-provided message when available, else ``fallback``."""
        return fallback if self.message == GENERIC_FAILURE_MESSAGE else self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status_code={self.status_code!r}, "
            f"error={self.error!r}, message={self.message!r})"
        )


class UnauthorizedError(GatewayError):
    """401 response. Handled by the auth collaborator (forced logout)."""


class TransportError(GatewayError):
    """Network-level failure before any HTTP response was received."""


class MalformedResponseError(GatewayError):
    """2xx response whose body does not match the expected shape."""
