"""WebSocket frame models for the room socket."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import AfterValidator, AliasChoices, BaseModel, Field, PositiveInt, TypeAdapter

from chat_session.domain.value_objects.enums import MessageKind


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class MessagePayload(BaseModel):
    """Confirmed message as the server serializes it (socket and REST)."""

    id: PositiveInt
    chat_room_id: int
    sender_id: str
    sender_name: str | None = None
    content: str
    message_type: MessageKind = MessageKind.TEXT
    created_at: UtcDatetime
    is_deleted: bool = False
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None


# Server → Client


class ChatMessageFrame(MessagePayload):
    type: Literal["chat_message"]
    message_type: MessageKind


class ConnectionStatusFrame(BaseModel):
    type: Literal["connection_status"]
    status: Literal["connected", "disconnected", "error"]
    chat_room_id: int | None = None
    timestamp: UtcDatetime | None = None


class TypingFrame(BaseModel):
    type: Literal["typing"]
    chat_room_id: int
    sender_id: str
    is_typing: bool


class ReadReceiptFrame(BaseModel):
    type: Literal["read_receipt"]
    message_id: int
    sender_id: str = Field(validation_alias=AliasChoices("sender_id", "read_by"))


class MessageSentFrame(BaseModel):
    type: Literal["message_sent"]
    success: bool = True
    message: str | None = None
    data: dict[str, Any] | None = None
    timestamp: UtcDatetime | None = None


InboundFrame = Annotated[
    Union[
        ChatMessageFrame,
        ConnectionStatusFrame,
        TypingFrame,
        ReadReceiptFrame,
        MessageSentFrame,
    ],
    Field(discriminator="type"),
]

inbound_adapter: TypeAdapter[InboundFrame] = TypeAdapter(InboundFrame)

INBOUND_TYPES = frozenset(
    {"chat_message", "connection_status", "typing", "read_receipt", "message_sent"}
)
IGNORED_TYPES = frozenset({"heartbeat", "heartbeat_ack"})


# Client → Server


class OutboundFrame(BaseModel):
    type: str

    def to_wire(self) -> str:
        return self.model_dump_json(exclude_none=True)


class ChatMessageOut(OutboundFrame):
    type: Literal["chat_message"] = "chat_message"
    chat_room_id: int
    sender_id: str
    content: str
    message_type: MessageKind = MessageKind.TEXT
    timestamp: datetime
    sender_name: str | None = None


class TypingOut(OutboundFrame):
    type: Literal["typing"] = "typing"
    chat_room_id: int
    sender_id: str
    is_typing: bool


class ReadReceiptOut(OutboundFrame):
    type: Literal["read_receipt"] = "read_receipt"
    message_id: int
    sender_id: str
