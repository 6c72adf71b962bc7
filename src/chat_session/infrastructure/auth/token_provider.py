from __future__ import annotations

import logging
from typing import Any

import jwt

from chat_session.application.dto.principal import Principal
from chat_session.application.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class JwtTokenProvider:
    """Implements application.ports.auth.AuthProvider over a bearer JWT.

    The signature is the server's business; the client only reads the
    subject and refuses to present an expired token. Refresh belongs to the
    auth service, which pushes the new token through ``set_token``.
    """

    def __init__(self, token: str | None = None, *, leeway: float = 0) -> None:
        self._token = token or None
        self._leeway = leeway

    def set_token(self, token: str | None) -> None:
        self._token = token or None

    def get_access_token(self) -> str | None:
        if self._token is None:
            return None
        self._decode(self._token)
        return self._token

    def current_user(self) -> Principal | None:
        if self._token is None:
            return None
        try:
            claims = self._decode(self._token)
        except AuthenticationError:
            logger.debug("Cannot resolve current user", exc_info=True)
            return None
        return Principal(
            user_id=str(claims["sub"]),
            display_name=claims.get("name") or claims.get("email"),
        )

    def _decode(self, token: str) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": True, "require": ["sub"]},
                leeway=self._leeway,
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("access token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError(f"invalid access token: {exc}") from exc
