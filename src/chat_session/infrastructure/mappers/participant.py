from __future__ import annotations

from chat_session.domain.entities.participant import Participant
from chat_session.infrastructure.rest.schemas import ParticipantSchema


def schema_to_entity(schema: ParticipantSchema) -> Participant:
    return Participant(
        id=schema.id,
        room_id=schema.chat_room_id,
        member_id=schema.member_id,
        role=schema.role,
        joined_at=schema.joined_at,
        is_active=schema.is_active,
        member_name=schema.member_name,
    )
