from __future__ import annotations

import logging

from chat_session.config import Settings, settings as default_settings
from chat_session.infrastructure.auth.token_provider import JwtTokenProvider
from chat_session.infrastructure.rest.chat_api import HttpChatApi
from chat_session.infrastructure.ws.transport import WebsocketsConnector
from chat_session.services.session import ChatSession

logger = logging.getLogger(__name__)


def create_session(
    token: str | None = None,
    *,
    settings: Settings | None = None,
) -> tuple[ChatSession, HttpChatApi]:
    """Wire a ChatSession to the real HTTP and WebSocket collaborators.

    The caller owns the returned API client and closes it after the session.
    """
    cfg = settings or default_settings
    auth = JwtTokenProvider(token or cfg.ACCESS_TOKEN)
    api = HttpChatApi(auth, settings=cfg)
    connector = WebsocketsConnector(ping_interval=cfg.WS_PING_INTERVAL_SECONDS)
    session = ChatSession(api, auth, connector, settings=cfg)
    logger.info("Chat session created for %s", cfg.rest_base_url)
    return session, api
