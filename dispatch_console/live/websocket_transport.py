"""WebSocket push transport.

Keeps one websocket open to the push server, sends the role subscriptions
after every (re)connect and feeds each JSON frame into a ``PushConnection``.

Frames:
- outbound: {"action": "subscribe-orders"} (plus "agencyId" for inventory)
- inbound:  {"event": "order:assigned", "data": {...}, "timestamp": ...}
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Callable

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import (
    ConnectionClosedError,
    ConnectionClosedOK,
    InvalidStatus,
    WebSocketException,
)

from dispatch_console.gateway.errors import TransportError, UnauthorizedError

if TYPE_CHECKING:
    from dispatch_console.core.ports.auth_session import AuthSession
    from dispatch_console.live.connection import PushConnection

LOGGER = logging.getLogger(__name__)

ROLE_SUBSCRIPTIONS: dict[str, tuple[str, ...]] = {
    "admin": (
        "subscribe-orders",
        "subscribe-products",
        "subscribe-agencies",
        "subscribe-agents",
    ),
    "agency_owner": ("subscribe-orders", "subscribe-inventory"),
    "agent": ("subscribe-orders",),
    "customer": ("subscribe-orders",),
}

DEFAULT_INITIAL_BACKOFF_S = 1.0
DEFAULT_MAX_BACKOFF_S = 5.0
DEFAULT_MAX_ATTEMPTS = 5


def subscription_frames(role: str, agency_id: str | None = None) -> list[dict[str, str]]:
    """Subscription frames sent after connecting with ``role``."""
    frames: list[dict[str, str]] = []
    for action in ROLE_SUBSCRIPTIONS.get(role, ()):
        if action == "subscribe-inventory":
            if agency_id:
                frames.append({"action": action, "agencyId": agency_id})
            continue
        frames.append({"action": action})
    return frames


class WebSocketPushTransport:
    """Reconnecting websocket reader feeding a ``PushConnection``."""

    def __init__(
        self,
        url: str,
        connection: PushConnection,
        auth: AuthSession,
        *,
        role: str = "admin",
        agency_id: str | None = None,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF_S,
        max_backoff: float = DEFAULT_MAX_BACKOFF_S,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        connect: Callable[..., Any] = ws_connect,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self._url = url
        self._connection = connection
        self._auth = auth
        self._role = role
        self._agency_id = agency_id
        self._initial_backoff = initial_backoff
        self._max_backoff = max_backoff
        self._max_attempts = max_attempts
        self._connect = connect
        self._sleep = sleep

        self._ws: Any = None
        self._stopping = False
        # Set once the current connection delivered a frame.
        self._delivered = False

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    def _headers(self) -> dict[str, str]:
        token = self._auth.token
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _backoff(self, failures: int) -> float:
        return min(self._max_backoff, self._initial_backoff * (2 ** max(failures - 1, 0)))

    async def run(self) -> None:
        """Read frames until ``stop()``; reconnect on connection loss.

        Raises TransportError after ``max_attempts`` consecutive failed
        connection attempts. An attempt only counts as successful once a
        frame arrived; a server that accepts and then drops the connection
        abnormally keeps counting towards the limit. A 401 on the handshake
        is reported to the auth collaborator and ends the loop without
        retrying.
        """
        failures = 0
        while not self._stopping:
            self._delivered = False
            try:
                async with self._connect(self._url, additional_headers=self._headers()) as ws:
                    self._ws = ws
                    LOGGER.info("Push connection open", extra={"url": self._url, "role": self._role})
                    await self._subscribe(ws)
                    await self._read(ws)
            except InvalidStatus as exc:
                status_code = exc.response.status_code
                if status_code == 401:
                    error = UnauthorizedError("Session expired", status_code=401, error="unauthorized")
                    self._auth.handle_api_error(error)
                    LOGGER.warning("Push handshake rejected; stopping", extra={"url": self._url})
                    return
                failures += 1
                LOGGER.warning(
                    "Push handshake failed",
                    extra={"url": self._url, "status_code": status_code, "attempt": failures},
                )
            except ConnectionClosedOK as exc:
                LOGGER.info("Push connection closed", extra={"url": self._url, "reason": repr(exc)})
            except ConnectionClosedError as exc:
                if not self._delivered:
                    failures += 1
                LOGGER.warning(
                    "Push connection dropped",
                    extra={"url": self._url, "attempt": failures, "reason": repr(exc)},
                )
            except (WebSocketException, OSError) as exc:
                failures += 1
                LOGGER.warning(
                    "Push connection failed",
                    extra={"url": self._url, "attempt": failures, "error": repr(exc)},
                )
            finally:
                self._ws = None

            if self._delivered:
                failures = 0
            if self._stopping:
                break
            if failures >= self._max_attempts:
                LOGGER.error("Push reconnect attempts exhausted", extra={"attempts": failures})
                raise TransportError(
                    "Live updates unavailable. Please reload.",
                    error="push_unavailable",
                )
            await self._sleep(self._backoff(failures))

        LOGGER.info("Push transport stopped", extra={"url": self._url})

    async def _subscribe(self, ws: Any) -> None:
        for frame in subscription_frames(self._role, self._agency_id):
            await ws.send(json.dumps(frame))

    async def _read(self, ws: Any) -> None:
        async for raw in ws:
            self._delivered = True
            frame = self._parse(raw)
            if frame is None:
                continue
            name = frame["event"]
            try:
                await self._connection.dispatch(name, frame)
            except Exception:  # pylint: disable=broad-exception-caught
                # One failing handler must not tear down the session.
                LOGGER.exception("Push handler failed", extra={"event_name": name})
            if self._stopping:
                return

    @staticmethod
    def _parse(raw: Any) -> dict[str, Any] | None:
        try:
            frame = json.loads(raw)
        except (TypeError, ValueError):
            LOGGER.warning("Dropping non-JSON push frame")
            return None
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            LOGGER.warning("Dropping push frame without event name")
            return None
        return frame

    async def stop(self) -> None:
        self._stopping = True
        ws = self._ws
        if ws is not None:
            await ws.close()
