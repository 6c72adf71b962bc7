from __future__ import annotations

import time

import jwt
import pytest

from chat_session.application.exceptions import AuthenticationError
from chat_session.infrastructure.auth.token_provider import JwtTokenProvider

_SECRET = "signing-key-held-by-the-server-only-0123456789"


def _make_token(sub: str = "u1", *, expires_in: int = 3600, **claims) -> str:
    payload = {"sub": sub, "exp": int(time.time()) + expires_in, **claims}
    return jwt.encode(payload, _SECRET, algorithm="HS256")


def test_current_user_from_claims():
    provider = JwtTokenProvider(_make_token("u1", name="Alice"))

    user = provider.current_user()

    assert user.user_id == "u1"
    assert user.sender_name == "Alice"


def test_sender_name_falls_back_to_email():
    provider = JwtTokenProvider(_make_token("u1", email="alice@example.com"))

    assert provider.current_user().display_name == "alice@example.com"


def test_valid_token_is_returned():
    token = _make_token()

    assert JwtTokenProvider(token).get_access_token() == token


def test_no_token():
    provider = JwtTokenProvider("")

    assert provider.get_access_token() is None
    assert provider.current_user() is None


def test_expired_token_is_refused():
    provider = JwtTokenProvider(_make_token(expires_in=-60))

    with pytest.raises(AuthenticationError):
        provider.get_access_token()
    assert provider.current_user() is None


def test_token_without_subject_is_invalid():
    token = jwt.encode({"exp": int(time.time()) + 60}, _SECRET, algorithm="HS256")

    with pytest.raises(AuthenticationError):
        JwtTokenProvider(token).get_access_token()


def test_garbage_token_is_invalid():
    with pytest.raises(AuthenticationError):
        JwtTokenProvider("not-a-jwt").get_access_token()


def test_set_token_replaces_token():
    provider = JwtTokenProvider(_make_token(expires_in=-60))

    provider.set_token(_make_token("u2"))

    assert provider.current_user().user_id == "u2"
