"""Schemas shared by the websocket and REST collaborators."""

from .notification import (
    NotificationListResponse,
    NotificationRead,
    NotificationUpdate,
    TokenRefreshResponse,
)

__all__ = [
    "NotificationListResponse",
    "NotificationRead",
    "NotificationUpdate",
    "TokenRefreshResponse",
]
