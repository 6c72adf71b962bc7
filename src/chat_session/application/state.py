"""Observable session state shared by every component of a chat session."""
from __future__ import annotations

import bisect
import logging
from typing import Callable, Iterable

from chat_session.domain.entities.error import SessionError
from chat_session.domain.entities.message import Message
from chat_session.domain.entities.participant import Participant
from chat_session.domain.entities.room import Room
from chat_session.domain.entities.signals import ReadReceipt, TypingIndicator
from chat_session.domain.value_objects.enums import ConnectionStatus, ErrorCode, SessionPhase
from chat_session.domain.value_objects.ids import MessageRef

logger = logging.getLogger(__name__)

Listener = Callable[["SessionState"], None]


class SessionState:
    """Single source of truth for one chat session.

    Mutators notify subscribers synchronously after each change. Readers get
    tuples/copies so a listener can never mutate the log behind the
    reconciler's back.
    """

    def __init__(self) -> None:
        self._rooms: list[Room] = []
        self._active_room: Room | None = None
        self._messages: list[Message] = []
        self._participants: list[Participant] = []
        self._typing: dict[str, TypingIndicator] = {}
        self._read_receipts: dict[str, ReadReceipt] = {}
        self._status = ConnectionStatus.DISCONNECTED
        self._phase = SessionPhase.IDLE
        self._error: SessionError | None = None
        self._is_loading = False
        self._listeners: list[Listener] = []

    # -- observer -------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Session state listener failed")

    # -- read side ------------------------------------------------------

    @property
    def rooms(self) -> tuple[Room, ...]:
        return tuple(self._rooms)

    @property
    def active_room(self) -> Room | None:
        return self._active_room

    @property
    def active_room_id(self) -> int | None:
        return self._active_room.id if self._active_room else None

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def participants(self) -> tuple[Participant, ...]:
        return tuple(self._participants)

    @property
    def typing(self) -> dict[str, TypingIndicator]:
        return dict(self._typing)

    @property
    def read_receipts(self) -> dict[str, ReadReceipt]:
        return dict(self._read_receipts)

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status == ConnectionStatus.CONNECTED

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def error(self) -> SessionError | None:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def has_confirmed(self, message_id: int) -> bool:
        return any(m.id == message_id for m in self._messages)

    # -- write side -----------------------------------------------------

    def set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        logger.debug("Connection status %s -> %s", self._status, status)
        self._status = status
        self.notify()

    def set_phase(self, phase: SessionPhase) -> None:
        if phase == self._phase:
            return
        self._phase = phase
        self.notify()

    def set_loading(self, is_loading: bool) -> None:
        if is_loading == self._is_loading:
            return
        self._is_loading = is_loading
        self.notify()

    def record_error(self, code: ErrorCode, detail: str = "") -> None:
        logger.warning("Session error %s: %s", code, detail)
        self._error = SessionError(code=code, detail=detail)
        self.notify()

    def clear_error(self) -> None:
        if self._error is None:
            return
        self._error = None
        self.notify()

    def set_rooms(self, rooms: Iterable[Room]) -> None:
        self._rooms = list(rooms)
        self.notify()

    def add_room(self, room: Room) -> None:
        self._rooms = [r for r in self._rooms if r.id != room.id] + [room]
        self.notify()

    def remove_room(self, room_id: int) -> None:
        self._rooms = [r for r in self._rooms if r.id != room_id]
        self.notify()

    def set_active_room(self, room: Room | None) -> None:
        self._active_room = room
        self.notify()

    def reset_room(self) -> None:
        """Drop everything scoped to the active room, the room included."""
        self._active_room = None
        self._messages = []
        self._participants = []
        self._typing = {}
        self._read_receipts = {}
        self.notify()

    def set_participants(self, participants: Iterable[Participant]) -> None:
        self._participants = list(participants)
        self.notify()

    def remove_participant(self, member_id: str) -> None:
        self._participants = [p for p in self._participants if p.member_id != member_id]
        self.notify()

    def insert_message(self, message: Message, *, notify: bool = True) -> None:
        """Insert keeping the log ordered by created_at; ties keep arrival order."""
        index = bisect.bisect_right(self._messages, message.created_at, key=lambda m: m.created_at)
        self._messages.insert(index, message)
        if notify:
            self.notify()

    def remove_message(self, ref: MessageRef, *, notify: bool = True) -> bool:
        for index, existing in enumerate(self._messages):
            if existing.ref == ref:
                del self._messages[index]
                if notify:
                    self.notify()
                return True
        return False

    def set_typing(self, indicator: TypingIndicator) -> None:
        if indicator.is_typing:
            self._typing[indicator.sender_id] = indicator
        else:
            self._typing.pop(indicator.sender_id, None)
        self.notify()

    def record_read_receipt(self, receipt: ReadReceipt) -> None:
        self._read_receipts[receipt.sender_id] = receipt
        self.notify()
