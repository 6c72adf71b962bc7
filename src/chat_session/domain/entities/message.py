from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from chat_session.domain.value_objects.enums import MessageKind
from chat_session.domain.value_objects.ids import Confirmed, MessageRef, Pending


@dataclass(frozen=True, slots=True)
class Message:
    ref: MessageRef
    room_id: int
    sender_id: str
    sender_name: str
    content: str
    kind: MessageKind
    created_at: datetime
    is_deleted: bool = False
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = None

    @property
    def is_pending(self) -> bool:
        return isinstance(self.ref, Pending)

    @property
    def id(self) -> int | None:
        """Server id, or None while the message is still a placeholder."""
        if isinstance(self.ref, Confirmed):
            return self.ref.id
        return None
