from __future__ import annotations

from urllib.parse import urlencode

from chat_session.config import Settings

_CONNECT_FLAGS = {
    "optimize": "true",
    "reconnect": "true",
    "heartbeat": "true",
    "transports": "websocket",
}


def build_room_url(cfg: Settings, room_id: int, token: str) -> str:
    """Room-scoped socket address carrying the bearer token."""
    query = urlencode({"token": token, **_CONNECT_FLAGS})
    return f"{cfg.ws_base_url}/chat/ws/{room_id}?{query}"
