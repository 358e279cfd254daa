"""Notification use cases: normalization, the local store and its bindings."""

from .bindings import (
    ConnectionStatusObserver,
    MarkNotificationRead,
    NotificationList,
    NotificationPage,
    NotificationStream,
    unread_count,
)
from .normalize import build_meta, normalize_many, normalize_notification
from .store import NotificationStore

__all__ = [
    "ConnectionStatusObserver",
    "MarkNotificationRead",
    "NotificationList",
    "NotificationPage",
    "NotificationStream",
    "unread_count",
    "build_meta",
    "normalize_many",
    "normalize_notification",
    "NotificationStore",
]
