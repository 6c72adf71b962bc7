from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class AuthenticationError(AppError):
    """Token missing, expired or rejected; the auth collaborator owns refresh."""


class ChatApiError(AppError):
    """REST collaborator failed (transport error or non-success status)."""

    def __init__(self, detail: str = "", status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(detail)


class TransportError(AppError):
    """The socket could not be opened or written to."""


class TransportClosed(AppError):
    """The socket closed; carries the WebSocket close code."""

    def __init__(self, code: int, reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"closed with code {code}: {reason}" if reason else f"closed with code {code}")
