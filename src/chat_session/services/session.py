"""Public control surface of a chat session."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Literal

from chat_session.application.exceptions import AppError, AuthenticationError, NotFoundError
from chat_session.application.ports.auth import AuthProvider
from chat_session.application.ports.chat_api import ChatApi
from chat_session.application.ports.clock import Clock, SystemClock
from chat_session.application.ports.scheduler import LoopScheduler, Scheduler
from chat_session.application.ports.transport import TransportConnector
from chat_session.application.state import Listener, SessionState
from chat_session.config import Settings, settings as default_settings
from chat_session.domain.entities.invitation import Invitation
from chat_session.domain.entities.room import Room
from chat_session.domain.value_objects.enums import ErrorCode, MessageKind, RoomType, SessionPhase
from chat_session.infrastructure.ws.manager import ConnectionManager
from chat_session.services.dispatcher import EventDispatcher
from chat_session.services.reconciler import MessageReconciler
from chat_session.services.signals import SignalEmitter

logger = logging.getLogger(__name__)


class ChatSession:
    """Sequences room selection, sending and leaving over one socket.

    Phases: ``idle`` -> ``selecting_room`` -> ``active``. Every await is a
    point where the user may have moved to another room, so results are
    applied only while the room they were fetched for is still the one being
    selected or active. Failures are recorded on :attr:`state`, never raised.
    """

    def __init__(
        self,
        api: ChatApi,
        auth: AuthProvider,
        connector: TransportConnector,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
        state: SessionState | None = None,
    ) -> None:
        self._cfg = settings or default_settings
        self._api = api
        self._auth = auth
        self._scheduler = scheduler or LoopScheduler()
        clock = clock or SystemClock()

        self.state = state or SessionState()
        self.connection = ConnectionManager(
            self.state, connector, auth, settings=self._cfg, scheduler=self._scheduler,
        )
        self.reconciler = MessageReconciler(
            self.state, self.connection, auth,
            settings=self._cfg, clock=clock, scheduler=self._scheduler,
        )
        self.signals = SignalEmitter(
            self.state, self.connection, auth, settings=self._cfg, scheduler=self._scheduler,
        )
        self.dispatcher = EventDispatcher(self.state, self.reconciler, self.connection, clock=clock)
        self.connection.set_frame_handler(self.dispatcher.dispatch)
        self.connection.set_open_handler(self._on_connected)

        self._selecting_room_id: int | None = None
        self._loaded_room_id: int | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def phase(self) -> SessionPhase:
        return self.state.phase

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.state.subscribe(listener)

    # -- room lifecycle ---------------------------------------------------

    async def select_room(self, room_id: int) -> bool:
        state = self.state
        if self._selecting_room_id == room_id:
            logger.debug("Room %s selection already in progress", room_id)
            return True
        if (
            state.phase == SessionPhase.ACTIVE
            and state.active_room_id == room_id
            and self.connection.is_open
            and self.connection.room_id == room_id
            and self._loaded_room_id == room_id
        ):
            logger.debug("Room %s already active", room_id)
            return True

        logger.info("Selecting room %s", room_id)
        self._selecting_room_id = room_id
        self._reset_room()
        state.clear_error()
        state.set_phase(SessionPhase.SELECTING_ROOM)
        state.set_loading(True)

        try:
            room = await self._api.get_room(room_id)
        except AppError as exc:
            if self._selecting_room_id != room_id:
                return False
            self._selecting_room_id = None
            if self.connection.room_id is not None:
                await self.connection.disconnect()
            state.set_phase(SessionPhase.IDLE)
            state.set_loading(False)
            self._record_failure(exc, ErrorCode.ROOM_LOAD_FAILED, f"could not load room {room_id}")
            return False

        if self._selecting_room_id != room_id:
            logger.info("Discarding metadata for room %s, selection moved on", room_id)
            return False
        state.set_active_room(room)

        connected = await self.connection.connect(room_id)
        if self._selecting_room_id != room_id:
            return False
        if connected:
            await self._load_room_data(room_id)
            if self._selecting_room_id != room_id:
                return False

        self._selecting_room_id = None
        state.set_phase(SessionPhase.ACTIVE)
        state.set_loading(False)
        return connected

    async def leave_room(self, room_id: int) -> bool:
        user = self._auth.current_user()
        if user is None:
            self.state.record_error(ErrorCode.AUTH_FAILED, "no signed-in user")
            return False
        try:
            left = await self._api.remove_participant(room_id, user.user_id)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not leave room {room_id}")
            return False
        if not left:
            return False

        logger.info("Left room %s", room_id)
        self.state.remove_room(room_id)
        if self.state.active_room_id in (None, room_id) or self._selecting_room_id == room_id:
            self._selecting_room_id = None
            await self.connection.disconnect()
            self._reset_room()
            self.state.set_phase(SessionPhase.IDLE)
        return True

    async def disconnect(self) -> None:
        await self.connection.disconnect()

    async def aclose(self) -> None:
        """Tear the session down: socket, timers, room data."""
        self._selecting_room_id = None
        await self.connection.disconnect()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._reset_room()
        self.state.set_phase(SessionPhase.IDLE)
        if isinstance(self._scheduler, LoopScheduler):
            await self._scheduler.aclose()

    # -- messaging --------------------------------------------------------

    async def send_message(self, content: str, kind: MessageKind | str = MessageKind.TEXT) -> bool:
        return await self.reconciler.send(content, MessageKind(kind))

    async def send_typing(self, is_typing: bool) -> bool:
        return await self.signals.send_typing(is_typing)

    async def send_read_receipt(self, message_id: int) -> bool:
        return await self.signals.send_read_receipt(message_id)

    async def load_history(
        self,
        *,
        before_message_id: int | None = None,
        limit: int | None = None,
    ) -> int:
        """Fetch an older page and merge it; returns how many messages were new."""
        room_id = self.state.active_room_id
        if room_id is None:
            return 0
        if before_message_id is None:
            before_message_id = next((m.id for m in self.state.messages if m.id is not None), None)
        try:
            history = await self._api.get_history(
                room_id,
                limit=limit or self._cfg.HISTORY_PAGE_SIZE,
                before_message_id=before_message_id,
            )
        except AppError as exc:
            self._record_failure(exc, ErrorCode.HISTORY_LOAD_FAILED, f"could not load history for room {room_id}")
            return 0
        if self.state.active_room_id != room_id:
            return 0
        return self.reconciler.merge_history(reversed(history))

    async def mark_as_read(self, message_id: int) -> bool:
        room_id = self.state.active_room_id
        if room_id is None:
            return False
        try:
            return await self._api.mark_as_read(room_id, message_id)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not mark message {message_id} as read")
            return False

    async def unread_count(self, room_id: int | None = None) -> int | None:
        room_id = room_id if room_id is not None else self.state.active_room_id
        if room_id is None:
            return None
        try:
            return await self._api.unread_count(room_id)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not count unread messages in room {room_id}")
            return None

    # -- rooms ------------------------------------------------------------

    async def list_rooms(
        self,
        *,
        room_type: RoomType | None = None,
        is_active: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Room]:
        self.state.set_loading(True)
        try:
            rooms = await self._api.list_rooms(
                room_type=room_type, is_active=is_active, limit=limit, offset=offset,
            )
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, "could not list rooms")
            return []
        finally:
            self.state.set_loading(False)
        self.state.set_rooms(rooms)
        return rooms

    async def create_room(self, name: str | None, room_type: RoomType = RoomType.GROUP) -> Room | None:
        try:
            room = await self._api.create_room(name=name, room_type=room_type)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, "could not create room")
            return None
        self.state.add_room(room)
        return room

    async def room_status(self, room_id: int | None = None) -> dict[str, Any] | None:
        room_id = room_id if room_id is not None else self.state.active_room_id
        if room_id is None:
            return None
        try:
            return await self._api.get_room_status(room_id)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not fetch status of room {room_id}")
            return None

    # -- participants -----------------------------------------------------

    async def load_participants(self) -> bool:
        room_id = self.state.active_room_id
        if room_id is None:
            return False
        return await self._load_participants(room_id)

    async def add_participant(self, member_id: str, role: str = "member") -> bool:
        room_id = self.state.active_room_id
        if room_id is None:
            return False
        try:
            return await self._api.add_participant(room_id, member_id, role)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not add {member_id}")
            return False

    async def remove_participant(self, member_id: str) -> bool:
        room_id = self.state.active_room_id
        if room_id is None:
            return False
        try:
            removed = await self._api.remove_participant(room_id, member_id)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not remove {member_id}")
            return False
        if removed and self.state.active_room_id == room_id:
            self.state.remove_participant(member_id)
        return removed

    async def invite_member(
        self,
        invitee_id: str,
        *,
        message: str | None = None,
        expires_at: datetime | None = None,
    ) -> Invitation | None:
        room_id = self.state.active_room_id
        if room_id is None:
            return None
        try:
            return await self._api.create_invitation(
                room_id, invitee_id, message=message, expires_at=expires_at,
            )
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not invite {invitee_id}")
            return None

    async def respond_to_invitation(
        self,
        invitation_id: int,
        response: Literal["accepted", "rejected"],
    ) -> bool:
        if response not in ("accepted", "rejected"):
            raise ValueError(f"unsupported invitation response: {response!r}")
        try:
            return await self._api.respond_to_invitation(invitation_id, response)
        except AppError as exc:
            self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not answer invitation {invitation_id}")
            return False

    # -- internals --------------------------------------------------------

    def _on_connected(self, room_id: int) -> None:
        # A room whose first connect failed gets its data once a retry opens the socket.
        if (
            self._selecting_room_id is not None
            or self.state.active_room_id != room_id
            or self._loaded_room_id == room_id
        ):
            return
        logger.info("Socket for room %s is up, loading room data", room_id)
        task = asyncio.create_task(self._load_room_data(room_id), name=f"chat-room-data-{room_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load_room_data(self, room_id: int) -> None:
        if self.state.active_room_id != room_id:
            return
        self._loaded_room_id = room_id
        await self._load_initial_history(room_id)
        if self.state.active_room_id == room_id:
            await self._load_participants(room_id)

    async def _load_initial_history(self, room_id: int) -> None:
        # Messages already delivered by the socket win over the first page.
        if self.state.messages:
            logger.debug("Room %s log already populated, skipping history", room_id)
            return
        try:
            history = await self._api.get_history(room_id, limit=self._cfg.HISTORY_PAGE_SIZE)
        except AppError as exc:
            if self.state.active_room_id == room_id:
                self._record_failure(exc, ErrorCode.HISTORY_LOAD_FAILED, f"could not load history for room {room_id}")
            return
        if self.state.active_room_id != room_id:
            logger.info("Discarding history for room %s, no longer active", room_id)
            return
        merged = self.reconciler.merge_history(reversed(history))
        logger.debug("Loaded %d history messages for room %s", merged, room_id)

    async def _load_participants(self, room_id: int) -> bool:
        try:
            participants = await self._api.list_participants(room_id)
        except AppError as exc:
            if self.state.active_room_id == room_id:
                self._record_failure(exc, ErrorCode.REQUEST_FAILED, f"could not load participants of room {room_id}")
            return False
        if self.state.active_room_id != room_id:
            return False
        self.state.set_participants(participants)
        return True

    def _reset_room(self) -> None:
        self._loaded_room_id = None
        self.reconciler.reset()
        self.signals.reset()
        self.state.reset_room()

    def _record_failure(self, exc: AppError, code: ErrorCode, detail: str) -> None:
        logger.warning("%s: %s", detail, exc.detail)
        if isinstance(exc, AuthenticationError):
            code = ErrorCode.AUTH_FAILED
        elif isinstance(exc, NotFoundError) and code == ErrorCode.REQUEST_FAILED:
            code = ErrorCode.NOT_FOUND
        self.state.record_error(code, detail)
