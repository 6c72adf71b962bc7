from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8000"
    API_PREFIX: str = "/api/v1"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    ACCESS_TOKEN: str = ""

    CONNECT_TIMEOUT_SECONDS: float = 5.0
    RECONNECT_INTERVAL_SECONDS: float = 1.0
    MAX_RECONNECT_ATTEMPTS: int = 3
    WS_PING_INTERVAL_SECONDS: float | None = 20.0

    RECONCILE_WINDOW_SECONDS: float = 5.0
    PENDING_SEND_TIMEOUT_SECONDS: float = 15.0
    TYPING_IDLE_SECONDS: float = 3.0
    HISTORY_PAGE_SIZE: int = 50

    LOG_LEVEL: str = "INFO"

    @property
    def rest_base_url(self) -> str:
        return self.API_BASE_URL.rstrip("/") + self.API_PREFIX

    @property
    def ws_base_url(self) -> str:
        base = self.API_BASE_URL.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return base + self.API_PREFIX

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
