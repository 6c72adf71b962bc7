"""Classifies inbound frames and routes them into session state."""
from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from chat_session.application.ports.clock import Clock, SystemClock
from chat_session.application.state import SessionState
from chat_session.domain.entities.signals import ReadReceipt, TypingIndicator
from chat_session.domain.value_objects.enums import ConnectionStatus, ErrorCode
from chat_session.infrastructure.mappers.message import payload_to_entity
from chat_session.infrastructure.ws.manager import ConnectionManager
from chat_session.infrastructure.ws.protocol import (
    IGNORED_TYPES,
    INBOUND_TYPES,
    ChatMessageFrame,
    ConnectionStatusFrame,
    MessageSentFrame,
    ReadReceiptFrame,
    TypingFrame,
    inbound_adapter,
)
from chat_session.services.reconciler import MessageReconciler

logger = logging.getLogger(__name__)

_MESSAGE_FIELDS = ("id", "chat_room_id", "sender_id", "content", "message_type", "created_at")


class EventDispatcher:
    """Synchronous, one frame at a time, in arrival order."""

    def __init__(
        self,
        state: SessionState,
        reconciler: MessageReconciler,
        connection: ConnectionManager,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._state = state
        self._reconciler = reconciler
        self._connection = connection
        self._clock = clock or SystemClock()

    def dispatch(self, raw: str, room_id: int) -> None:
        data = self._decode(raw)
        if data is None:
            return

        frame_type = data.get("type")
        if frame_type is None and all(k in data for k in _MESSAGE_FIELDS):
            # Some servers push bare message objects without a type.
            data = {**data, "type": "chat_message"}
            frame_type = "chat_message"

        if frame_type in IGNORED_TYPES:
            return
        if frame_type not in INBOUND_TYPES:
            logger.info("Unrecognized frame type %r, ignoring", frame_type)
            return

        try:
            frame = inbound_adapter.validate_python(data)
        except ValidationError as exc:
            logger.warning("Malformed %s frame dropped: %s", frame_type, exc.errors(include_url=False))
            return

        if isinstance(frame, ChatMessageFrame):
            self._on_chat_message(frame, room_id)
        elif isinstance(frame, ConnectionStatusFrame):
            self._on_connection_status(frame, room_id)
        elif isinstance(frame, TypingFrame):
            self._on_typing(frame, room_id)
        elif isinstance(frame, ReadReceiptFrame):
            self._on_read_receipt(frame)
        elif isinstance(frame, MessageSentFrame):
            self._on_message_sent(frame)

    @staticmethod
    def _decode(raw: str) -> dict[str, Any] | None:
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Malformed frame dropped: not JSON")
            return None
        if not isinstance(data, dict):
            logger.warning("Malformed frame dropped: expected an object, got %s", type(data).__name__)
            return None
        return data

    def _is_current(self, room_id: int) -> bool:
        return self._state.active_room_id == room_id

    def _on_chat_message(self, frame: ChatMessageFrame, room_id: int) -> None:
        if frame.chat_room_id != room_id or not self._is_current(room_id):
            logger.debug(
                "Message %s for room %s ignored (socket room %s, active room %s)",
                frame.id, frame.chat_room_id, room_id, self._state.active_room_id,
            )
            return
        self._reconciler.ingest(payload_to_entity(frame))

    def _on_connection_status(self, frame: ConnectionStatusFrame, room_id: int) -> None:
        if frame.status == "connected":
            if self._connection.is_open and self._connection.room_id == room_id:
                self._state.set_status(ConnectionStatus.CONNECTED)
        elif frame.status == "error":
            self._state.record_error(ErrorCode.SERVER_ERROR, f"server reported an error for room {room_id}")
        else:
            logger.info("Server reports room %s disconnected", room_id)

    def _on_typing(self, frame: TypingFrame, room_id: int) -> None:
        if frame.chat_room_id != room_id or not self._is_current(room_id):
            return
        self._state.set_typing(
            TypingIndicator(
                room_id=frame.chat_room_id,
                sender_id=frame.sender_id,
                is_typing=frame.is_typing,
                received_at=self._clock.now(),
            )
        )

    def _on_read_receipt(self, frame: ReadReceiptFrame) -> None:
        self._state.record_read_receipt(
            ReadReceipt(
                message_id=frame.message_id,
                sender_id=frame.sender_id,
                received_at=self._clock.now(),
            )
        )

    def _on_message_sent(self, frame: MessageSentFrame) -> None:
        if frame.success:
            logger.debug("Server acknowledged send")
            return
        self._state.record_error(ErrorCode.SEND_FAILED, frame.message or "server rejected the message")
