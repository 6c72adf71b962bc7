"""``websockets`` implementation of the transport ports."""
from __future__ import annotations

import logging

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus, InvalidURI
from websockets.protocol import State

from chat_session.application.exceptions import (
    AuthenticationError,
    TransportClosed,
    TransportError,
)

logger = logging.getLogger(__name__)

ABNORMAL_CLOSURE = 1006


def _close_details(exc: ConnectionClosed) -> tuple[int, str]:
    if exc.rcvd is not None:
        return exc.rcvd.code, exc.rcvd.reason
    return ABNORMAL_CLOSURE, ""


class WebsocketsSocket:
    """Implements application.ports.transport.TransportSocket."""

    def __init__(self, conn: ClientConnection) -> None:
        self._conn = conn

    @property
    def is_open(self) -> bool:
        return self._conn.state is State.OPEN

    async def send_text(self, data: str) -> None:
        try:
            await self._conn.send(data)
        except ConnectionClosed as exc:
            raise TransportError(f"socket closed while sending: {exc}") from exc

    async def receive(self) -> str:
        try:
            raw = await self._conn.recv()
        except ConnectionClosed as exc:
            code, reason = _close_details(exc)
            raise TransportClosed(code, reason) from exc
        if isinstance(raw, bytes):
            return raw.decode("utf-8", errors="replace")
        return raw

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._conn.close(code, reason)


class WebsocketsConnector:
    """Implements application.ports.transport.TransportConnector."""

    def __init__(self, *, ping_interval: float | None = 20.0) -> None:
        self._ping_interval = ping_interval

    async def open(self, url: str) -> WebsocketsSocket:
        try:
            conn = await connect(url, open_timeout=None, ping_interval=self._ping_interval)
        except InvalidStatus as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise AuthenticationError(f"handshake rejected with {status}") from exc
            raise TransportError(f"handshake rejected with {status}") from exc
        except (InvalidHandshake, InvalidURI, OSError) as exc:
            raise TransportError(f"cannot open socket: {exc}") from exc
        logger.debug("Socket opened")
        return WebsocketsSocket(conn)
