from __future__ import annotations

from chat_session.domain.entities.message import Message
from chat_session.domain.value_objects.ids import Confirmed
from chat_session.infrastructure.ws.protocol import MessagePayload


def payload_to_entity(payload: MessagePayload) -> Message:
    return Message(
        ref=Confirmed(payload.id),
        room_id=payload.chat_room_id,
        sender_id=payload.sender_id,
        sender_name=payload.sender_name or payload.sender_id,
        content=payload.content,
        kind=payload.message_type,
        created_at=payload.created_at,
        is_deleted=payload.is_deleted,
        file_url=payload.file_url,
        file_name=payload.file_name,
        file_size=payload.file_size,
    )
