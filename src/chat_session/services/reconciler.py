"""Optimistic sends and their reconciliation with server echoes.

The server does not echo a client-side id, so a confirmed message is
matched to a placeholder by sender, exact content and a created-at delta
inside the reconcile window. Two identical messages sent inside the window
are matched oldest first, whichever echo arrives first.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from chat_session.application.ports.auth import AuthProvider
from chat_session.application.ports.clock import Clock, SystemClock
from chat_session.application.ports.scheduler import LoopScheduler, Scheduler, TimerHandle
from chat_session.application.state import SessionState
from chat_session.config import Settings, settings as default_settings
from chat_session.domain.entities.message import Message
from chat_session.domain.value_objects.enums import ErrorCode, MessageKind
from chat_session.domain.value_objects.ids import Pending
from chat_session.infrastructure.ws.manager import ConnectionManager
from chat_session.infrastructure.ws.protocol import ChatMessageOut

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PendingSend:
    message: Message
    created_at: datetime
    timer: TimerHandle | None = field(default=None, compare=False)


class MessageReconciler:
    def __init__(
        self,
        state: SessionState,
        connection: ConnectionManager,
        auth: AuthProvider,
        *,
        settings: Settings | None = None,
        clock: Clock | None = None,
        scheduler: Scheduler | None = None,
    ) -> None:
        self._cfg = settings or default_settings
        self._state = state
        self._connection = connection
        self._auth = auth
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or LoopScheduler()
        self._tokens = itertools.count(1)
        self._pending: list[PendingSend] = []

    @property
    def pending(self) -> tuple[PendingSend, ...]:
        return tuple(self._pending)

    async def send(self, content: str, kind: MessageKind = MessageKind.TEXT) -> bool:
        """Insert a placeholder and transmit; does not wait for the echo."""
        room = self._state.active_room
        if room is None:
            self._state.record_error(ErrorCode.SEND_REJECTED, "no active room")
            return False
        if not self._connection.is_open:
            self._state.record_error(ErrorCode.SEND_REJECTED, "not connected")
            return False
        user = self._auth.current_user()
        if user is None:
            self._state.record_error(ErrorCode.SEND_REJECTED, "no signed-in user")
            return False

        now = self._clock.now()
        placeholder = Message(
            ref=Pending(next(self._tokens)),
            room_id=room.id,
            sender_id=user.user_id,
            sender_name=user.sender_name,
            content=content,
            kind=kind,
            created_at=now,
        )
        entry = PendingSend(message=placeholder, created_at=now)
        entry.timer = self._scheduler.call_later(
            self._cfg.PENDING_SEND_TIMEOUT_SECONDS, lambda: self._on_stuck(entry),
        )
        self._pending.append(entry)
        self._state.insert_message(placeholder)

        frame = ChatMessageOut(
            chat_room_id=room.id,
            sender_id=user.user_id,
            content=content,
            message_type=kind,
            timestamp=now,
            sender_name=user.sender_name,
        )
        if not await self._connection.send(frame):
            self._withdraw(entry)
            self._state.record_error(ErrorCode.SEND_FAILED, "message could not be transmitted")
            return False
        return True

    def ingest(self, message: Message, *, notify: bool = True) -> bool:
        """Merge a confirmed message into the log; False when it was a duplicate."""
        if message.id is not None and self._state.has_confirmed(message.id):
            logger.debug("Dropping duplicate message %s", message.id)
            return False

        entry = self._match(message)
        if entry is not None:
            logger.debug("Resolved placeholder %s -> %s", entry.message.ref, message.id)
            self._forget(entry)
            self._state.remove_message(entry.message.ref, notify=False)
        self._state.insert_message(message, notify=notify)
        return True

    def merge_history(self, messages: Iterable[Message]) -> int:
        merged = sum(1 for m in messages if self.ingest(m, notify=False))
        self._state.notify()
        return merged

    def reset(self) -> None:
        for entry in self._pending:
            if entry.timer is not None:
                entry.timer.cancel()
        self._pending = []

    def _match(self, message: Message) -> PendingSend | None:
        window = self._cfg.RECONCILE_WINDOW_SECONDS
        for entry in self._pending:
            candidate = entry.message
            if (
                candidate.sender_id == message.sender_id
                and candidate.content == message.content
                and abs((candidate.created_at - message.created_at).total_seconds()) < window
            ):
                return entry
        return None

    def _forget(self, entry: PendingSend) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
        if entry in self._pending:
            self._pending.remove(entry)

    def _withdraw(self, entry: PendingSend) -> None:
        self._forget(entry)
        self._state.remove_message(entry.message.ref)

    def _on_stuck(self, entry: PendingSend) -> None:
        entry.timer = None
        if entry not in self._pending:
            return
        logger.warning("Message %s still unconfirmed", entry.message.ref)
        self._state.record_error(
            ErrorCode.SEND_STUCK,
            f"message not confirmed after {self._cfg.PENDING_SEND_TIMEOUT_SECONDS:g}s",
        )
