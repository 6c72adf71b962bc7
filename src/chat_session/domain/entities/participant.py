from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_session.domain.value_objects.enums import ParticipantRole


@dataclass(frozen=True, slots=True)
class Participant:
    id: int
    room_id: int
    member_id: str
    role: ParticipantRole
    joined_at: datetime
    is_active: bool = True
    member_name: str | None = None
