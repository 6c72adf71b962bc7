from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class TypingIndicator:
    room_id: int
    sender_id: str
    is_typing: bool
    received_at: datetime


@dataclass(frozen=True, slots=True)
class ReadReceipt:
    message_id: int
    sender_id: str
    received_at: datetime
