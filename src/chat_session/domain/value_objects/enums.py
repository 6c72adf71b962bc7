from __future__ import annotations

from enum import StrEnum


class RoomType(StrEnum):
    GROUP = "group"
    DIRECT = "direct"


class MessageKind(StrEnum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    SYSTEM = "system"


class ParticipantRole(StrEnum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class InvitationStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class ConnectionStatus(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class SessionPhase(StrEnum):
    IDLE = "idle"
    SELECTING_ROOM = "selecting_room"
    ACTIVE = "active"


class ErrorCode(StrEnum):
    CONNECT_TIMEOUT = "connect_timeout"
    CONNECT_FAILED = "connect_failed"
    ABNORMAL_CLOSURE = "abnormal_closure"
    MAX_RECONNECT_EXCEEDED = "max_reconnect_exceeded"
    SEND_REJECTED = "send_rejected"
    SEND_FAILED = "send_failed"
    SEND_STUCK = "send_stuck"
    AUTH_FAILED = "auth_failed"
    ROOM_LOAD_FAILED = "room_load_failed"
    HISTORY_LOAD_FAILED = "history_load_failed"
    REQUEST_FAILED = "request_failed"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
