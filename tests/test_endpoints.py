import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notification_client.config import Settings
from notification_client.domain.exceptions import ConfigurationError
from notification_client.infrastructure.notifications import (
    LOCAL_FALLBACK_WS_BASES,
    build_notifications_url,
    candidates_from_settings,
    resolve_candidates,
)
from notification_client.infrastructure.notifications.endpoints import http_to_ws, sanitize_url


@pytest.mark.parametrize(
    ("base_url", "expected"),
    [
        ("http://api.test/api/v1", "ws://api.test/api/v1"),
        ("https://api.test/api/v1", "wss://api.test/api/v1"),
        ("HTTPS://api.test", "wss://api.test"),
        ("wss://already.test", "wss://already.test"),
    ],
)
def test_http_to_ws(base_url, expected):
    assert http_to_ws(base_url) == expected


def test_candidates_are_ordered_and_deduplicated():
    candidates = resolve_candidates(
        ws_base_url="ws://localhost:8000/api/v1/",
        http_base_urls=["https://api.test/api/v1", "https://api.test/api/v1", "http://localhost:8000/api/v1"],
    )

    assert candidates == [
        "ws://localhost:8000/api/v1",
        "wss://api.test/api/v1",
        "ws://127.0.0.1:8000/api/v1",
    ]


def test_local_fallbacks_are_appended():
    candidates = resolve_candidates(ws_base_url=None, http_base_urls=[])

    assert candidates == list(LOCAL_FALLBACK_WS_BASES)


def test_production_keeps_only_secure_candidates():
    candidates = resolve_candidates(
        ws_base_url="ws://insecure.test",
        http_base_urls=["https://api.test/api/v1", "http://plain.test"],
        production=True,
    )

    assert candidates == ["wss://api.test/api/v1"]


def test_production_without_secure_candidates_fails():
    with pytest.raises(ConfigurationError):
        resolve_candidates(ws_base_url=None, http_base_urls=["http://plain.test"], production=True)


def test_candidates_from_settings():
    settings = Settings(
        _env_file=None,
        api_base_url="https://api.test/api/v1",
        api_fallback_base_urls=["https://backup.test/api/v1"],
        api_ws_base_url="wss://ws.test/api/v1",
    )

    assert candidates_from_settings(settings)[:3] == [
        "wss://ws.test/api/v1",
        "wss://api.test/api/v1",
        "wss://backup.test/api/v1",
    ]


def test_build_notifications_url_encodes_token():
    url = build_notifications_url("ws://api.test/api/v1/", "a b&c")

    assert url == "ws://api.test/api/v1/notifications/ws?token=a+b%26c"


@pytest.mark.parametrize("base_url", ["http://api.test", "ftp://api.test", "api.test"])
def test_build_notifications_url_rejects_non_websocket_schemes(base_url):
    with pytest.raises(ConfigurationError):
        build_notifications_url(base_url, "token")


def test_build_notifications_url_requires_wss_in_production():
    with pytest.raises(ConfigurationError):
        build_notifications_url("ws://api.test", "token", production=True)

    assert build_notifications_url("wss://api.test", "token", production=True).startswith("wss://")


def test_sanitize_url_drops_the_token():
    assert sanitize_url("wss://api.test/api/v1/notifications/ws?token=secret") == (
        "wss://api.test/api/v1/notifications/ws"
    )
