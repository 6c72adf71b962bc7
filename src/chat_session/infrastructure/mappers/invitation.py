from __future__ import annotations

from chat_session.domain.entities.invitation import Invitation
from chat_session.infrastructure.rest.schemas import InvitationSchema


def schema_to_entity(schema: InvitationSchema) -> Invitation:
    return Invitation(
        id=schema.id,
        room_id=schema.chat_room_id,
        inviter_id=schema.inviter_id,
        invitee_id=schema.invitee_id,
        status=schema.status,
        created_at=schema.created_at,
        message=schema.message,
        expires_at=schema.expires_at,
    )
