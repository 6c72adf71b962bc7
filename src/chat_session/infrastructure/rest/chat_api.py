"""httpx implementation of the chat REST collaborator."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from chat_session.application.exceptions import (
    AuthenticationError,
    ChatApiError,
    NotFoundError,
)
from chat_session.application.ports.auth import AuthProvider
from chat_session.config import Settings, settings as default_settings
from chat_session.domain.entities.invitation import Invitation
from chat_session.domain.entities.message import Message
from chat_session.domain.entities.participant import Participant
from chat_session.domain.entities.room import Room
from chat_session.domain.value_objects.enums import RoomType
from chat_session.infrastructure.mappers import invitation as invitation_mapper
from chat_session.infrastructure.mappers import participant as participant_mapper
from chat_session.infrastructure.mappers import room as room_mapper
from chat_session.infrastructure.mappers.message import payload_to_entity
from chat_session.infrastructure.rest.schemas import (
    CreateInvitationRequest,
    CreateRoomRequest,
    InvitationSchema,
    ParticipantSchema,
    RoomSchema,
    SuccessResponse,
    UnreadCountResponse,
)
from chat_session.infrastructure.ws.protocol import MessagePayload

logger = logging.getLogger(__name__)

_rooms_adapter = TypeAdapter(list[RoomSchema])
_messages_adapter = TypeAdapter(list[MessagePayload])
_participants_adapter = TypeAdapter(list[ParticipantSchema])

_M = TypeVar("_M", bound=BaseModel)


class HttpChatApi:
    """Implements application.ports.chat_api.ChatApi."""

    def __init__(
        self,
        auth: AuthProvider,
        *,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        cfg = settings or default_settings
        self._auth = auth
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=cfg.rest_base_url,
            timeout=cfg.HTTP_TIMEOUT_SECONDS,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- rooms ------------------------------------------------------------

    async def get_room(self, room_id: int) -> Room:
        data = await self._request("GET", f"/chat/rooms/{room_id}")
        return room_mapper.schema_to_entity(self._parse(RoomSchema, data))

    async def list_rooms(
        self,
        *,
        room_type: RoomType | None = None,
        is_active: bool | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Room]:
        params = _query(
            room_type=room_type.value if room_type else None,
            is_active=_bool_param(is_active),
            limit=limit,
            offset=offset,
        )
        data = await self._request("GET", "/chat/rooms", params=params)
        return [room_mapper.schema_to_entity(s) for s in self._parse_list(_rooms_adapter, data)]

    async def create_room(self, *, name: str | None, room_type: RoomType) -> Room:
        body = CreateRoomRequest(name=name, room_type=room_type)
        data = await self._request("POST", "/chat/rooms", json=body.model_dump(mode="json", exclude_none=True))
        return room_mapper.schema_to_entity(self._parse(RoomSchema, data))

    async def get_room_status(self, room_id: int) -> dict[str, Any]:
        data = await self._request("GET", f"/chat/rooms/{room_id}/status")
        if not isinstance(data, dict):
            raise ChatApiError(f"unexpected room status payload: {type(data).__name__}")
        return data

    # -- messages ---------------------------------------------------------

    async def get_history(
        self,
        room_id: int,
        *,
        limit: int = 50,
        offset: int | None = None,
        before_message_id: int | None = None,
    ) -> list[Message]:
        params = _query(limit=limit, offset=offset, before_message_id=before_message_id)
        data = await self._request("GET", f"/chat/rooms/{room_id}/messages", params=params)
        return [payload_to_entity(p) for p in self._parse_list(_messages_adapter, data)]

    async def mark_as_read(self, room_id: int, message_id: int) -> bool:
        data = await self._request("POST", f"/chat/rooms/{room_id}/messages/read/{message_id}", json={})
        return self._parse(SuccessResponse, data).success

    async def unread_count(self, room_id: int) -> int:
        data = await self._request("GET", f"/chat/rooms/{room_id}/unread-count")
        return self._parse(UnreadCountResponse, data).unread_count

    # -- participants -----------------------------------------------------

    async def list_participants(self, room_id: int) -> list[Participant]:
        data = await self._request("GET", f"/chat/rooms/{room_id}/participants")
        return [participant_mapper.schema_to_entity(s) for s in self._parse_list(_participants_adapter, data)]

    async def add_participant(self, room_id: int, member_id: str, role: str = "member") -> bool:
        data = await self._request(
            "POST",
            f"/chat/rooms/{room_id}/participants",
            json={"member_id": member_id, "role": role},
        )
        return self._parse(SuccessResponse, data).success

    async def remove_participant(self, room_id: int, member_id: str) -> bool:
        data = await self._request("DELETE", f"/chat/rooms/{room_id}/participants/{member_id}")
        return self._parse(SuccessResponse, data).success

    # -- invitations ------------------------------------------------------

    async def create_invitation(
        self,
        room_id: int,
        invitee_id: str,
        *,
        message: str | None = None,
        expires_at: datetime | None = None,
    ) -> Invitation:
        body = CreateInvitationRequest(invitee_id=invitee_id, message=message, expires_at=expires_at)
        data = await self._request(
            "POST",
            f"/chat/rooms/{room_id}/invitations",
            json=body.model_dump(mode="json", exclude_none=True),
        )
        return invitation_mapper.schema_to_entity(self._parse(InvitationSchema, data))

    async def respond_to_invitation(self, invitation_id: int, response: str) -> bool:
        data = await self._request(
            "POST",
            f"/chat/invitations/{invitation_id}/respond",
            json={"response": response},
        )
        return self._parse(SuccessResponse, data).success

    # -- plumbing ---------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        token = self._auth.get_access_token()
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            resp = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise ChatApiError(f"{method} {path} failed: {exc}") from exc

        if resp.status_code in (401, 403):
            raise AuthenticationError(f"{method} {path} rejected with {resp.status_code}")
        if resp.status_code == 404:
            raise NotFoundError(f"{method} {path} not found")
        if resp.is_error:
            raise ChatApiError(f"{method} {path} returned {resp.status_code}", status_code=resp.status_code)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise ChatApiError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _parse(model: type[_M], data: Any) -> _M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ChatApiError(f"unexpected {model.__name__} payload: {exc}") from exc

    @staticmethod
    def _parse_list(adapter: TypeAdapter[list[Any]], data: Any) -> list[Any]:
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            raise ChatApiError(f"unexpected list payload: {exc}") from exc


def _query(**params: Any) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


def _bool_param(value: bool | None) -> str | None:
    if value is None:
        return None
    return "true" if value else "false"
