from __future__ import annotations

import logging

from chat_session.application.ports.auth import AuthProvider
from chat_session.application.ports.scheduler import LoopScheduler, Scheduler, TimerHandle
from chat_session.application.state import SessionState
from chat_session.config import Settings, settings as default_settings
from chat_session.infrastructure.ws.manager import ConnectionManager
from chat_session.infrastructure.ws.protocol import ReadReceiptOut, TypingOut

logger = logging.getLogger(__name__)


class SignalEmitter:
    """Typing indicators with idle auto-clear, and read receipts."""

    def __init__(
        self,
        state: SessionState,
        connection: ConnectionManager,
        auth: AuthProvider,
        *,
        settings: Settings | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._cfg = settings or default_settings
        self._state = state
        self._connection = connection
        self._auth = auth
        self._scheduler = scheduler or LoopScheduler()
        self._typing_timer: TimerHandle | None = None

    async def send_typing(self, is_typing: bool) -> bool:
        room = self._state.active_room
        if room is None or not self._connection.is_open:
            return False
        user = self._auth.current_user()
        if user is None:
            logger.error("User id not available, typing indicator not sent")
            return False

        self._cancel_timer()
        sent = await self._connection.send(
            TypingOut(chat_room_id=room.id, sender_id=user.user_id, is_typing=is_typing)
        )
        if is_typing:
            self._typing_timer = self._scheduler.call_later(
                self._cfg.TYPING_IDLE_SECONDS, self._auto_clear,
            )
        return sent

    async def send_read_receipt(self, message_id: int) -> bool:
        if self._state.active_room is None or not self._connection.is_open:
            return False
        user = self._auth.current_user()
        if user is None:
            logger.error("User id not available, read receipt not sent")
            return False
        return await self._connection.send(ReadReceiptOut(message_id=message_id, sender_id=user.user_id))

    def reset(self) -> None:
        self._cancel_timer()

    async def _auto_clear(self) -> None:
        self._typing_timer = None
        await self.send_typing(False)

    def _cancel_timer(self) -> None:
        if self._typing_timer is not None:
            self._typing_timer.cancel()
            self._typing_timer = None
