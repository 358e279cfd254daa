"""Resolution of the websocket endpoints used by the notification stream."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from urllib.parse import urlencode, urlsplit

from notification_client.config import Settings
from notification_client.domain.exceptions import ConfigurationError

NOTIFICATIONS_WS_PATH = "/notifications/ws"
LOCAL_FALLBACK_WS_BASES: tuple[str, ...] = (
    "ws://localhost:8000/api/v1",
    "ws://127.0.0.1:8000/api/v1",
)

_HTTP_SCHEME = re.compile(r"^http(s?)://", re.IGNORECASE)


def http_to_ws(base_url: str) -> str:
    """Swap ``http``/``https`` for ``ws``/``wss``; other schemes pass through."""

    return _HTTP_SCHEME.sub(lambda match: "wss://" if match.group(1) else "ws://", base_url.strip())


def _clean(base_url: str) -> str:
    return base_url.strip().rstrip("/")


def _is_websocket_url(base_url: str) -> bool:
    return urlsplit(base_url).scheme.lower() in {"ws", "wss"}


def _is_secure(base_url: str) -> bool:
    return urlsplit(base_url).scheme.lower() == "wss"


def resolve_candidates(
    *,
    ws_base_url: str | None,
    http_base_urls: Iterable[str],
    production: bool = False,
    local_fallbacks: Sequence[str] = LOCAL_FALLBACK_WS_BASES,
) -> list[str]:
    """Return the ordered, de-duplicated websocket base URLs to try.

    The explicit websocket base comes first, then one candidate per HTTP base
    and finally the well-known local fallbacks. Production only keeps
    ``wss://`` candidates.
    """

    ordered: list[str] = []
    if ws_base_url and ws_base_url.strip():
        ordered.append(ws_base_url)
    ordered.extend(http_to_ws(url) for url in http_base_urls if url and url.strip())
    ordered.extend(local_fallbacks)

    candidates: list[str] = []
    seen: set[str] = set()
    for raw in ordered:
        candidate = _clean(raw)
        if not candidate or not _is_websocket_url(candidate):
            continue
        if production and not _is_secure(candidate):
            continue
        key = candidate.lower()
        if key in seen:
            continue
        seen.add(key)
        candidates.append(candidate)

    if not candidates:
        if production:
            raise ConfigurationError(
                "Secure WebSocket (wss://) endpoints are required in production environments"
            )
        raise ConfigurationError("No websocket endpoint could be derived from the configuration")
    return candidates


def candidates_from_settings(settings: Settings) -> list[str]:
    """Derive the websocket candidates once from ``settings``."""

    return resolve_candidates(
        ws_base_url=settings.api_ws_base_url,
        http_base_urls=[settings.api_base_url, *settings.api_fallback_base_urls],
        production=settings.is_production,
    )


def build_notifications_url(base_url: str, token: str, *, production: bool = False) -> str:
    """Return the websocket URL for ``base_url`` with ``token`` as query string."""

    if not _is_websocket_url(base_url):
        raise ConfigurationError(f"Invalid WebSocket protocol for {base_url}")
    if production and not _is_secure(base_url):
        raise ConfigurationError(
            "Secure WebSocket (wss://) is required in production environments"
        )
    return f"{_clean(base_url)}{NOTIFICATIONS_WS_PATH}?{urlencode({'token': token})}"


def sanitize_url(url: str) -> str:
    """Drop the query string so tokens never reach the logs."""

    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


__all__ = [
    "LOCAL_FALLBACK_WS_BASES",
    "NOTIFICATIONS_WS_PATH",
    "build_notifications_url",
    "candidates_from_settings",
    "http_to_ws",
    "resolve_candidates",
    "sanitize_url",
]
