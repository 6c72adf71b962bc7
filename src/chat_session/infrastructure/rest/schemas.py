from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, BeforeValidator

from chat_session.domain.value_objects.enums import (
    InvitationStatus,
    ParticipantRole,
    RoomType,
)
from chat_session.infrastructure.ws.protocol import MessagePayload, UtcDatetime


def _legacy_room_type(value: object) -> object:
    # Older servers call one-to-one rooms "coffee_chat".
    return RoomType.DIRECT if value == "coffee_chat" else value


class RoomSchema(BaseModel):
    id: int
    name: str | None = None
    room_type: Annotated[RoomType, BeforeValidator(_legacy_room_type)] = RoomType.GROUP
    is_active: bool = True
    participant_count: int = 0
    last_message: MessagePayload | None = None


class ParticipantSchema(BaseModel):
    id: int
    chat_room_id: int
    member_id: str
    role: ParticipantRole = ParticipantRole.MEMBER
    joined_at: UtcDatetime
    is_active: bool = True
    member_name: str | None = None


class InvitationSchema(BaseModel):
    id: int
    chat_room_id: int
    inviter_id: str
    invitee_id: str
    status: InvitationStatus = InvitationStatus.PENDING
    message: str | None = None
    expires_at: UtcDatetime | None = None
    created_at: UtcDatetime


class CreateRoomRequest(BaseModel):
    name: str | None = None
    room_type: RoomType = RoomType.GROUP


class CreateInvitationRequest(BaseModel):
    invitee_id: str
    message: str | None = None
    expires_at: UtcDatetime | None = None


class SuccessResponse(BaseModel):
    success: bool = False


class UnreadCountResponse(BaseModel):
    unread_count: int = 0
