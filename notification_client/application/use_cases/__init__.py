"""Aggregate application use cases."""

from .notifications import (
    ConnectionStatusObserver,
    MarkNotificationRead,
    NotificationList,
    NotificationStore,
    NotificationStream,
    normalize_notification,
)

__all__ = [
    "ConnectionStatusObserver",
    "MarkNotificationRead",
    "NotificationList",
    "NotificationStore",
    "NotificationStream",
    "normalize_notification",
]
