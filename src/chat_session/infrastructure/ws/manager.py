"""Room socket lifecycle: connect, timeout guard, disconnect, bounded reconnect."""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from chat_session.application.exceptions import (
    AuthenticationError,
    TransportClosed,
    TransportError,
)
from chat_session.application.ports.auth import AuthProvider
from chat_session.application.ports.scheduler import LoopScheduler, Scheduler, TimerHandle
from chat_session.application.ports.transport import TransportConnector, TransportSocket
from chat_session.application.state import SessionState
from chat_session.config import Settings, settings as default_settings
from chat_session.domain.value_objects.enums import ConnectionStatus, ErrorCode
from chat_session.infrastructure.ws.endpoint import build_room_url
from chat_session.infrastructure.ws.protocol import OutboundFrame

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
GOING_AWAY = 1001
ABNORMAL_CLOSURE = 1006
AUTH_CLOSE_CODES = frozenset({4001, 4003})

FrameHandler = Callable[[str, int], None]
OpenHandler = Callable[[int], None]


class ConnectionManager:
    """Owns the single room socket of a session.

    Connect calls are serialized, so the previous socket is always closed
    before the next one is opened. Every connect/disconnect bumps a
    generation counter; an open that completes under an older generation
    is closed straight away instead of being installed.
    """

    def __init__(
        self,
        state: SessionState,
        connector: TransportConnector,
        auth: AuthProvider,
        *,
        settings: Settings | None = None,
        scheduler: Scheduler | None = None,
        url_builder: Callable[[int, str], str] | None = None,
    ) -> None:
        self._cfg = settings or default_settings
        self._state = state
        self._connector = connector
        self._auth = auth
        self._scheduler = scheduler or LoopScheduler()
        self._url_builder = url_builder or (lambda room_id, token: build_room_url(self._cfg, room_id, token))
        self._frame_handler: FrameHandler | None = None
        self._open_handler: OpenHandler | None = None

        self._socket: TransportSocket | None = None
        self._room_id: int | None = None
        self._reader: asyncio.Task[None] | None = None
        self._reconnect_timer: TimerHandle | None = None
        self._connecting_room_id: int | None = None
        self._attempts = 0
        self._generation = 0
        self._lock = asyncio.Lock()

    def set_open_handler(self, handler: OpenHandler) -> None:
        """Called with the room id each time a socket is installed, reconnects included."""
        self._open_handler = handler

    def set_frame_handler(self, handler: FrameHandler) -> None:
        self._frame_handler = handler

    @property
    def is_open(self) -> bool:
        return self._socket is not None and self._socket.is_open

    @property
    def room_id(self) -> int | None:
        return self._room_id if self._socket is not None else None

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    async def connect(self, room_id: int) -> bool:
        """Open the socket for ``room_id``; True once it is open."""
        return await self._connect(room_id, reconnecting=False)

    async def disconnect(self) -> None:
        self._cancel_reconnect()
        self._generation += 1
        self._connecting_room_id = None
        self._attempts = 0
        await self._close_current("Manual disconnect")
        self._state.set_status(ConnectionStatus.DISCONNECTED)
        self._state.clear_error()
        logger.info("Disconnected")

    async def send(self, frame: OutboundFrame) -> bool:
        socket = self._socket
        if socket is None or not socket.is_open:
            logger.debug("Dropping %s frame, socket not open", frame.type)
            return False
        try:
            await socket.send_text(frame.to_wire())
        except TransportError:
            logger.warning("Failed to send %s frame", frame.type, exc_info=True)
            return False
        return True

    # -- connect ----------------------------------------------------------

    async def _connect(self, room_id: int, *, reconnecting: bool) -> bool:
        self._cancel_reconnect()
        if self._connecting_room_id != room_id:
            self._generation += 1
        generation = self._generation

        async with self._lock:
            if generation != self._generation:
                logger.debug("Connect to room %s superseded before it started", room_id)
                return False
            if self.is_open and self._room_id == room_id:
                logger.debug("Already connected to room %s, reusing socket", room_id)
                return True
            self._connecting_room_id = room_id
            try:
                return await self._open(room_id, generation, reconnecting=reconnecting)
            finally:
                if self._connecting_room_id == room_id:
                    self._connecting_room_id = None

    async def _open(self, room_id: int, generation: int, *, reconnecting: bool) -> bool:
        try:
            token = self._auth.get_access_token()
        except AuthenticationError as exc:
            self._fail_auth(exc.detail)
            return False
        if not token:
            self._fail_auth("no access token")
            return False

        await self._close_current("Switching to new room")

        if reconnecting:
            self._state.set_status(ConnectionStatus.RECONNECTING)
        else:
            self._state.set_status(ConnectionStatus.CONNECTING)
            self._state.clear_error()

        url = self._url_builder(room_id, token)
        try:
            socket = await asyncio.wait_for(
                self._connector.open(url),
                timeout=self._cfg.CONNECT_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning("Connect to room %s timed out", room_id)
            if generation == self._generation:
                self._state.set_status(ConnectionStatus.DISCONNECTED)
                self._state.record_error(
                    ErrorCode.CONNECT_TIMEOUT,
                    f"no answer within {self._cfg.CONNECT_TIMEOUT_SECONDS:g}s",
                )
            return False
        except AuthenticationError as exc:
            if generation == self._generation:
                self._fail_auth(exc.detail)
            return False
        except TransportError as exc:
            logger.warning("Connect to room %s failed: %s", room_id, exc.detail)
            if generation == self._generation:
                self._handle_closed(room_id, ABNORMAL_CLOSURE, exc.detail, error=ErrorCode.CONNECT_FAILED)
            return False

        if generation != self._generation:
            logger.info("Discarding late socket for room %s", room_id)
            await self._quiet_close(socket, "Superseded")
            return False

        self._socket = socket
        self._room_id = room_id
        self._attempts = 0
        self._state.clear_error()
        self._state.set_status(ConnectionStatus.CONNECTED)
        self._reader = asyncio.create_task(
            self._read_loop(socket, room_id), name=f"chat-ws-reader-{room_id}",
        )
        logger.info("Connected to room %s", room_id)
        if self._open_handler is not None:
            self._open_handler(room_id)
        return True

    async def _close_current(self, reason: str) -> None:
        socket, reader = self._socket, self._reader
        self._socket = None
        self._reader = None
        self._room_id = None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
        if socket is not None:
            logger.debug("Closing socket: %s", reason)
            await self._quiet_close(socket, reason)

    @staticmethod
    async def _quiet_close(socket: TransportSocket, reason: str) -> None:
        try:
            await socket.close(NORMAL_CLOSURE, reason)
        except (TransportError, OSError):
            logger.warning("Error while closing socket", exc_info=True)

    # -- inbound ----------------------------------------------------------

    async def _read_loop(self, socket: TransportSocket, room_id: int) -> None:
        while True:
            try:
                raw = await socket.receive()
            except TransportClosed as exc:
                self._on_socket_closed(socket, room_id, exc.code, exc.reason)
                return
            if self._frame_handler is None:
                continue
            try:
                self._frame_handler(raw, room_id)
            except Exception:
                logger.exception("Error processing frame for room %s", room_id)

    def _on_socket_closed(self, socket: TransportSocket, room_id: int, code: int, reason: str) -> None:
        if socket is not self._socket:
            logger.debug("Ignoring close of stale socket for room %s", room_id)
            return
        self._socket = None
        self._reader = None
        self._room_id = None
        self._handle_closed(room_id, code, reason)

    # -- reconnect --------------------------------------------------------

    def _handle_closed(
        self,
        room_id: int,
        code: int,
        reason: str,
        *,
        error: ErrorCode = ErrorCode.ABNORMAL_CLOSURE,
    ) -> None:
        logger.info("Socket for room %s closed: code=%s reason=%s", room_id, code, reason)
        if code in (NORMAL_CLOSURE, GOING_AWAY):
            self._state.set_status(ConnectionStatus.DISCONNECTED)
            return
        if code in AUTH_CLOSE_CODES:
            self._fail_auth(reason or f"closed with code {code}")
            return

        max_attempts = self._cfg.MAX_RECONNECT_ATTEMPTS
        if self._attempts >= max_attempts:
            logger.warning("Max reconnection attempts reached for room %s", room_id)
            self._state.set_status(ConnectionStatus.DISCONNECTED)
            self._state.record_error(
                ErrorCode.MAX_RECONNECT_EXCEEDED,
                f"gave up after {max_attempts} attempts",
            )
            return

        self._attempts += 1
        interval = self._cfg.RECONNECT_INTERVAL_SECONDS
        logger.info(
            "Reconnecting to room %s in %.1fs (attempt %d/%d)",
            room_id, interval, self._attempts, max_attempts,
        )
        self._state.set_status(ConnectionStatus.RECONNECTING)
        self._state.record_error(error, reason or f"closed with code {code}")
        self._reconnect_timer = self._scheduler.call_later(interval, lambda: self._reconnect(room_id))

    async def _reconnect(self, room_id: int) -> None:
        self._reconnect_timer = None
        await self._connect(room_id, reconnecting=True)

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _fail_auth(self, detail: str) -> None:
        self._state.set_status(ConnectionStatus.DISCONNECTED)
        self._state.record_error(ErrorCode.AUTH_FAILED, detail)
