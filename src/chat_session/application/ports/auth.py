from __future__ import annotations

from typing import Protocol

from chat_session.application.dto.principal import Principal


class AuthProvider(Protocol):
    def get_access_token(self) -> str | None:
        """Current bearer token; raises AuthenticationError when it is unusable."""
        ...

    def current_user(self) -> Principal | None: ...
