from __future__ import annotations

from dataclasses import dataclass

from chat_session.domain.value_objects.enums import ErrorCode


@dataclass(frozen=True, slots=True)
class SessionError:
    """The single current error a UI can render as a banner."""

    code: ErrorCode
    detail: str = ""
