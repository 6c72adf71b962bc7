from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """The signed-in user as seen by the chat client."""

    user_id: str
    display_name: str | None = None

    @property
    def sender_name(self) -> str:
        return self.display_name or self.user_id
