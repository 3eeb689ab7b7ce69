from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    API_BASE_URL: str = "http://localhost:8080"

    WS_PATH: str = "/ws/chat"
    WS_TOKEN_PARAM: str = "token"
    WS_OPEN_TIMEOUT: float = 10.0
    WS_PING_INTERVAL: float | None = 20.0

    HTTP_TIMEOUT: float = 15.0
    HISTORY_PAGE_SIZE: int = 50

    SUBSCRIBER_QUEUE_SIZE: int = 256

    TYPING_EXPIRY_SECONDS: float = 6.0
    OPTIMISTIC_MATCH_WINDOW_SECONDS: float = 60.0

    RECONNECT_MODE: Literal["none", "backoff"] = "none"
    RECONNECT_BASE_DELAY: float = 1.0
    RECONNECT_MAX_DELAY: float = 30.0
    RECONNECT_MAX_ATTEMPTS: int = 10

    AUTH_TOKEN: str | None = None
    LOG_LEVEL: str = "INFO"

    @property
    def relay_url_base(self) -> str:
        """API_BASE_URL with the scheme swapped to ws/wss, joined with WS_PATH."""
        base = self.API_BASE_URL.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return f"{base}/{self.WS_PATH.lstrip('/')}"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
