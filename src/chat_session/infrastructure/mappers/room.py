from __future__ import annotations

from chat_session.domain.entities.room import Room
from chat_session.infrastructure.mappers.message import payload_to_entity
from chat_session.infrastructure.rest.schemas import RoomSchema


def schema_to_entity(schema: RoomSchema) -> Room:
    return Room(
        id=schema.id,
        name=schema.name,
        room_type=schema.room_type,
        participant_count=schema.participant_count,
        last_message=payload_to_entity(schema.last_message) if schema.last_message else None,
        is_active=schema.is_active,
    )
