from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_session.domain.value_objects.enums import InvitationStatus


@dataclass(frozen=True, slots=True)
class Invitation:
    id: int
    room_id: int
    inviter_id: str
    invitee_id: str
    status: InvitationStatus
    created_at: datetime
    message: str | None = None
    expires_at: datetime | None = None
