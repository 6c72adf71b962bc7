from __future__ import annotations

from dataclasses import dataclass

from chat_session.domain.entities.message import Message
from chat_session.domain.value_objects.enums import RoomType


@dataclass(frozen=True, slots=True)
class Room:
    id: int
    name: str | None
    room_type: RoomType
    participant_count: int = 0
    last_message: Message | None = None
    is_active: bool = True
