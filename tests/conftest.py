"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import inspect
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

import pytest

from chat_session.application.dto.principal import Principal
from chat_session.application.exceptions import (
    AppError,
    AuthenticationError,
    NotFoundError,
    TransportClosed,
    TransportError,
)
from chat_session.config import Settings
from chat_session.domain.entities.invitation import Invitation
from chat_session.domain.entities.message import Message
from chat_session.domain.entities.participant import Participant
from chat_session.domain.entities.room import Room
from chat_session.domain.value_objects.enums import (
    InvitationStatus,
    MessageKind,
    ParticipantRole,
    RoomType,
)
from chat_session.domain.value_objects.ids import Confirmed
from chat_session.services.session import ChatSession

T0 = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "API_BASE_URL": "http://chat.test",
        "CONNECT_TIMEOUT_SECONDS": 0.05,
        "RECONNECT_INTERVAL_SECONDS": 1.0,
        "MAX_RECONNECT_ATTEMPTS": 3,
        "TYPING_IDLE_SECONDS": 3.0,
        "RECONCILE_WINDOW_SECONDS": 5.0,
        "PENDING_SEND_TIMEOUT_SECONDS": 15.0,
        "HISTORY_PAGE_SIZE": 50,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_room(room_id: int = 42, *, name: str | None = None, room_type: RoomType = RoomType.GROUP) -> Room:
    return Room(id=room_id, name=name or f"room-{room_id}", room_type=room_type, participant_count=2)


def make_message(
    message_id: int,
    *,
    room_id: int = 42,
    sender_id: str = "u2",
    content: str = "hello",
    created_at: datetime | None = None,
) -> Message:
    return Message(
        ref=Confirmed(message_id),
        room_id=room_id,
        sender_id=sender_id,
        sender_name=sender_id,
        content=content,
        kind=MessageKind.TEXT,
        created_at=created_at or T0,
    )


def chat_frame(
    message_id: int,
    *,
    room_id: int = 42,
    sender_id: str = "u2",
    content: str = "hello",
    created_at: datetime | None = None,
    **extra: Any,
) -> dict[str, Any]:
    return {
        "type": "chat_message",
        "id": message_id,
        "chat_room_id": room_id,
        "sender_id": sender_id,
        "content": content,
        "message_type": "text",
        "created_at": (created_at or T0).isoformat(),
        **extra,
    }


async def settle(rounds: int = 20) -> None:
    """Let reader tasks and timer-spawned tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@dataclass
class FakeClock:
    current: datetime = T0

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


@dataclass
class FakeTimer:
    due: float
    callback: Callable[[], Awaitable[Any] | None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class FakeScheduler:
    """Manual time: timers fire only from advance()."""

    now: float = 0.0
    timers: list[FakeTimer] = field(default_factory=list)
    _tasks: set[asyncio.Task[Any]] = field(default_factory=set)

    def call_later(self, delay: float, callback: Callable[[], Awaitable[Any] | None]) -> FakeTimer:
        timer = FakeTimer(due=self.now + delay, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def armed(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        while True:
            due = sorted((t for t in self.armed if t.due <= self.now), key=lambda t: t.due)
            if not due:
                return
            for timer in due:
                timer.cancelled = True
                result = timer.callback()
                if inspect.isawaitable(result):
                    task = asyncio.ensure_future(result)
                    self._tasks.add(task)
                    task.add_done_callback(self._tasks.discard)


@dataclass
class FakeAuth:
    user_id: str | None = "u1"
    name: str | None = "Alice"
    token: str | None = "tok"
    expired: bool = False

    def get_access_token(self) -> str | None:
        if self.expired:
            raise AuthenticationError("access token expired")
        return self.token

    def current_user(self) -> Principal | None:
        if self.user_id is None or self.expired:
            return None
        return Principal(user_id=self.user_id, display_name=self.name)


class FakeSocket:
    def __init__(self, room_id: int, events: list[tuple[Any, ...]]) -> None:
        self.room_id = room_id
        self.sent: list[dict[str, Any]] = []
        self.close_code: int | None = None
        self.fail_sends = False
        self._events = events
        self._open = True
        self._inbox: asyncio.Queue[str | TransportClosed] = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return self._open

    async def send_text(self, data: str) -> None:
        if self.fail_sends or not self._open:
            raise TransportError("send failed")
        self.sent.append(json.loads(data))

    async def receive(self) -> str:
        item = await self._inbox.get()
        if isinstance(item, TransportClosed):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if not self._open:
            return
        self._events.append(("close", self.room_id, code))
        self._open = False
        self.close_code = code
        self._inbox.put_nowait(TransportClosed(code, reason))

    # server side

    def feed(self, frame: dict[str, Any]) -> None:
        self._inbox.put_nowait(json.dumps(frame))

    def feed_raw(self, raw: str) -> None:
        self._inbox.put_nowait(raw)

    def drop(self, code: int = 1006, reason: str = "") -> None:
        self._open = False
        self.close_code = code
        self._events.append(("dropped", self.room_id, code))
        self._inbox.put_nowait(TransportClosed(code, reason))

    def frames(self, frame_type: str) -> list[dict[str, Any]]:
        return [f for f in self.sent if f.get("type") == frame_type]


@dataclass
class FakeConnector:
    """Scripted outcomes per open(): ok | fail | auth | hang | gate."""

    script: list[str] = field(default_factory=list)
    sockets: list[FakeSocket] = field(default_factory=list)
    events: list[tuple[Any, ...]] = field(default_factory=list)
    urls: list[str] = field(default_factory=list)
    gate: asyncio.Event | None = None
    max_open: int = 0

    async def open(self, url: str) -> FakeSocket:
        self.urls.append(url)
        match = re.search(r"/chat/ws/(\d+)", url)
        room_id = int(match.group(1)) if match else -1
        outcome = self.script.pop(0) if self.script else "ok"
        self.events.append(("connect", room_id))
        await asyncio.sleep(0)
        if outcome == "fail":
            raise TransportError("connection refused")
        if outcome == "auth":
            raise AuthenticationError("handshake rejected with 401")
        if outcome == "hang":
            await asyncio.Event().wait()
        if outcome == "gate" and self.gate is not None:
            await self.gate.wait()
        socket = FakeSocket(room_id, self.events)
        self.sockets.append(socket)
        self.events.append(("open", room_id))
        self.max_open = max(self.max_open, sum(s.is_open for s in self.sockets))
        return socket

    @property
    def open_sockets(self) -> list[FakeSocket]:
        return [s for s in self.sockets if s.is_open]

    @property
    def last(self) -> FakeSocket:
        return self.sockets[-1]


@dataclass
class FakeChatApi:
    rooms: dict[int, Room] = field(default_factory=dict)
    history: dict[int, list[Message]] = field(default_factory=dict)
    participants: dict[int, list[Participant]] = field(default_factory=dict)
    room_gates: dict[int, asyncio.Event] = field(default_factory=dict)
    history_gates: dict[int, asyncio.Event] = field(default_factory=dict)
    errors: dict[str, AppError] = field(default_factory=dict)
    calls: list[tuple[Any, ...]] = field(default_factory=list)
    on_history: Callable[[int], None] | None = None
    unread: int = 0
    room_status: dict[str, Any] = field(default_factory=lambda: {"status": "active"})

    def _check(self, name: str) -> None:
        if name in self.errors:
            raise self.errors[name]

    async def get_room(self, room_id: int) -> Room:
        self.calls.append(("get_room", room_id))
        if room_id in self.room_gates:
            await self.room_gates[room_id].wait()
        self._check("get_room")
        if room_id not in self.rooms:
            raise NotFoundError(f"room {room_id}")
        return self.rooms[room_id]

    async def list_rooms(self, **params: Any) -> list[Room]:
        self.calls.append(("list_rooms", params))
        self._check("list_rooms")
        return list(self.rooms.values())

    async def create_room(self, *, name: str | None, room_type: RoomType) -> Room:
        self.calls.append(("create_room", name, room_type))
        self._check("create_room")
        room = Room(id=max(self.rooms, default=0) + 1, name=name, room_type=room_type)
        self.rooms[room.id] = room
        return room

    async def get_room_status(self, room_id: int) -> dict[str, Any]:
        self.calls.append(("get_room_status", room_id))
        self._check("get_room_status")
        if room_id not in self.rooms:
            raise NotFoundError(f"room {room_id}")
        return {"chat_room_id": room_id, **self.room_status}

    async def get_history(self, room_id: int, **params: Any) -> list[Message]:
        self.calls.append(("get_history", room_id, params))
        if self.on_history is not None:
            self.on_history(room_id)
        if room_id in self.history_gates:
            await self.history_gates[room_id].wait()
        self._check("get_history")
        return list(self.history.get(room_id, []))

    async def list_participants(self, room_id: int) -> list[Participant]:
        self.calls.append(("list_participants", room_id))
        self._check("list_participants")
        return list(self.participants.get(room_id, []))

    async def add_participant(self, room_id: int, member_id: str, role: str = "member") -> bool:
        self.calls.append(("add_participant", room_id, member_id, role))
        self._check("add_participant")
        return True

    async def remove_participant(self, room_id: int, member_id: str) -> bool:
        self.calls.append(("remove_participant", room_id, member_id))
        self._check("remove_participant")
        return True

    async def mark_as_read(self, room_id: int, message_id: int) -> bool:
        self.calls.append(("mark_as_read", room_id, message_id))
        self._check("mark_as_read")
        return True

    async def unread_count(self, room_id: int) -> int:
        self.calls.append(("unread_count", room_id))
        self._check("unread_count")
        return self.unread

    async def create_invitation(self, room_id: int, invitee_id: str, **params: Any) -> Invitation:
        self.calls.append(("create_invitation", room_id, invitee_id, params))
        self._check("create_invitation")
        return Invitation(
            id=7,
            room_id=room_id,
            inviter_id="u1",
            invitee_id=invitee_id,
            status=InvitationStatus.PENDING,
            created_at=T0,
            message=params.get("message"),
        )

    async def respond_to_invitation(self, invitation_id: int, response: str) -> bool:
        self.calls.append(("respond_to_invitation", invitation_id, response))
        self._check("respond_to_invitation")
        return True

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


def make_participant(member_id: str, *, room_id: int = 42) -> Participant:
    return Participant(
        id=hash(member_id) & 0xFFFF,
        room_id=room_id,
        member_id=member_id,
        role=ParticipantRole.MEMBER,
        joined_at=T0,
    )


@dataclass
class Harness:
    session: ChatSession
    api: FakeChatApi
    connector: FakeConnector
    auth: FakeAuth
    clock: FakeClock
    scheduler: FakeScheduler
    settings: Settings

    @property
    def state(self):
        return self.session.state


def build_harness(**setting_overrides: Any) -> Harness:
    cfg = make_settings(**setting_overrides)
    api = FakeChatApi(rooms={42: make_room(42), 43: make_room(43)})
    connector = FakeConnector()
    auth = FakeAuth()
    clock = FakeClock()
    scheduler = FakeScheduler()
    session = ChatSession(api, auth, connector, settings=cfg, clock=clock, scheduler=scheduler)
    return Harness(session, api, connector, auth, clock, scheduler, cfg)


@pytest.fixture
def harness() -> Harness:
    return build_harness()
