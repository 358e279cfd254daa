"""Domain entities exposed by the client."""

from .connection import (
    CloseEvent,
    ConnectionEvent,
    ConnectionStatus,
    ReconnectPlan,
    compute_backoff_delay,
    is_unauthorized_close,
    transition,
)
from .notification import NotificationEntity, NotificationMeta

__all__ = [
    "CloseEvent",
    "ConnectionEvent",
    "ConnectionStatus",
    "ReconnectPlan",
    "compute_backoff_delay",
    "is_unauthorized_close",
    "transition",
    "NotificationEntity",
    "NotificationMeta",
]
