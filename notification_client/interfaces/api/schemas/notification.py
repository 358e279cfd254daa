"""Pydantic models describing notification payloads on the wire."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from notification_client.utils import parse_timestamp


class NotificationRead(BaseModel):
    """Representation of a notification delivered by the server.

    Used both for websocket frames and for REST snapshot items. Validation is
    strict: identifiers must already be strings and ``is_read`` a boolean.
    ``payload`` and ``read_at`` may be null but must be present.
    """

    model_config = ConfigDict(strict=True, extra="ignore")

    id: str
    user_id: str
    type: str
    title: str
    message: str
    payload: dict[str, Any] | None
    is_read: bool
    created_at: str
    read_at: str | None

    @field_validator("created_at")
    @classmethod
    def _created_at_is_timestamp(cls, value: str) -> str:
        if parse_timestamp(value) is None:
            raise ValueError("created_at must be an ISO-8601 timestamp")
        return value

    @field_validator("read_at")
    @classmethod
    def _read_at_is_timestamp(cls, value: str | None) -> str | None:
        if value is not None and parse_timestamp(value) is None:
            raise ValueError("read_at must be an ISO-8601 timestamp")
        return value


class NotificationUpdate(BaseModel):
    """Payload used to change the read state of a notification."""

    is_read: bool


class NotificationListResponse(BaseModel):
    """Paginated snapshot returned by ``GET /notifications``."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0


class TokenRefreshResponse(BaseModel):
    """Subset of the ``POST /auth/refresh`` response used by the client."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "bearer"


__all__ = [
    "NotificationRead",
    "NotificationUpdate",
    "NotificationListResponse",
    "TokenRefreshResponse",
]
