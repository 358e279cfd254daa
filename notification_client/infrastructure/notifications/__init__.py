"""Realtime notification helpers for the infrastructure layer."""

from .endpoints import (
    LOCAL_FALLBACK_WS_BASES,
    build_notifications_url,
    candidates_from_settings,
    resolve_candidates,
)
from .manager import ConnectionManager, TokenRefresher
from .signals import SignalChannel, SignalKind, log_signal
from .transport import (
    Transport,
    TransportClosed,
    TransportConnection,
    WebSocketTransport,
)

__all__ = [
    "LOCAL_FALLBACK_WS_BASES",
    "build_notifications_url",
    "candidates_from_settings",
    "resolve_candidates",
    "ConnectionManager",
    "TokenRefresher",
    "SignalChannel",
    "SignalKind",
    "log_signal",
    "Transport",
    "TransportClosed",
    "TransportConnection",
    "WebSocketTransport",
]
