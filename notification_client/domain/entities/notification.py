"""Domain entity representing a user notification held by the client."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from notification_client.utils import format_timestamp


@dataclass(frozen=True)
class NotificationMeta:
    """Presentation hints derived from the notification type and payload."""

    href: str | None = None
    badge: str | None = None

    def to_dict(self) -> dict[str, str]:
        data: dict[str, str] = {}
        if self.href is not None:
            data["href"] = self.href
        if self.badge is not None:
            data["badge"] = self.badge
        return data


@dataclass(frozen=True)
class NotificationEntity:
    """Information message delivered to a specific user."""

    id: str
    user_id: str
    type: str
    title: str
    message: str
    payload: dict[str, Any] | None
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None
    meta: NotificationMeta | None = None

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (self.created_at, self.id)

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation of the notification."""

        data: dict[str, Any] = {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "payload": self.payload,
            "is_read": self.is_read,
            "created_at": format_timestamp(self.created_at),
            "read_at": format_timestamp(self.read_at),
        }
        if self.meta is not None:
            data["meta"] = self.meta.to_dict()
        return data


__all__ = ["NotificationEntity", "NotificationMeta"]
