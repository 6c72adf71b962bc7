from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from chat_session.domain.entities.invitation import Invitation
from chat_session.domain.entities.message import Message
from chat_session.domain.entities.participant import Participant
from chat_session.domain.entities.room import Room
from chat_session.domain.value_objects.enums import RoomType


class ChatApi(Protocol):
    """REST collaborator. Implementations raise AppError subclasses."""

    async def get_room(self, room_id: int) -> Room: ...

    async def list_rooms(
        self,
        *,
        room_type: RoomType | None = None,
        is_active: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Room]: ...

    async def create_room(self, *, name: str | None, room_type: RoomType) -> Room: ...

    async def get_room_status(self, room_id: int) -> dict[str, Any]:
        """Server-defined status document for the room."""
        ...

    async def get_history(
        self,
        room_id: int,
        *,
        limit: int = 50,
        offset: int | None = None,
        before_message_id: int | None = None,
    ) -> list[Message]:
        """Newest first, as the server returns it."""
        ...

    async def list_participants(self, room_id: int) -> list[Participant]: ...

    async def add_participant(self, room_id: int, member_id: str, role: str = "member") -> bool: ...

    async def remove_participant(self, room_id: int, member_id: str) -> bool: ...

    async def mark_as_read(self, room_id: int, message_id: int) -> bool: ...

    async def unread_count(self, room_id: int) -> int: ...

    async def create_invitation(
        self,
        room_id: int,
        invitee_id: str,
        *,
        message: str | None = None,
        expires_at: datetime | None = None,
    ) -> Invitation: ...

    async def respond_to_invitation(self, invitation_id: int, response: str) -> bool: ...
