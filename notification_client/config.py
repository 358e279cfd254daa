"""Client configuration settings."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

ENV_FILE = ".env"
ENV_FILE_ENCODING = "utf-8"

PRODUCTION_ENVIRONMENTS = frozenset({"production", "prod"})


class Settings(BaseSettings):
    """Notification client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding=ENV_FILE_ENCODING,
        extra="ignore",
    )

    api_base_url: str = Field(
        default="http://127.0.0.1:8000/api/v1",
        description="Base URL of the REST API; websocket candidates are derived from it",
        min_length=1,
    )
    api_ws_base_url: str | None = Field(
        default=None,
        description="Explicit websocket base URL tried before any derived candidate",
    )
    api_fallback_base_urls: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Additional HTTP base URLs used to derive fallback websocket endpoints",
    )
    app_env: str = Field(
        default="development",
        description="Deployment environment; production only accepts wss:// endpoints",
    )
    notifications_ws_enabled: bool = Field(
        default=True,
        description="Toggle the live notification stream",
    )
    reconnect_base_delay_seconds: float = Field(
        default=1.0,
        description="Initial delay before the first reconnect attempt",
        gt=0,
    )
    reconnect_max_delay_seconds: float = Field(
        default=30.0,
        description="Upper bound for the exponential reconnect delay",
        gt=0,
    )
    signal_cooldown_seconds: float = Field(
        default=5.0,
        description="Minimum time between two informational connectivity signals",
        ge=0,
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout applied to REST collaborator requests",
        gt=0,
    )
    ws_open_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for the websocket opening handshake",
        gt=0,
    )

    @field_validator("api_fallback_base_urls", mode="before")
    @classmethod
    def _split_fallback_urls(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return []
            if text.startswith("["):
                return json.loads(text)
            return [item.strip() for item in text.split(",") if item.strip()]
        return value

    @model_validator(mode="after")
    def _validate_delays(self) -> "Settings":
        if self.reconnect_max_delay_seconds < self.reconnect_base_delay_seconds:
            raise ValueError(
                "RECONNECT_MAX_DELAY_SECONDS must be greater than or equal to "
                "RECONNECT_BASE_DELAY_SECONDS"
            )
        return self

    @property
    def is_production(self) -> bool:
        return self.app_env.strip().lower() in PRODUCTION_ENVIRONMENTS


@lru_cache
def get_settings() -> Settings:
    """Return cached client settings instance."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the settings cache to force reloading from the environment."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
