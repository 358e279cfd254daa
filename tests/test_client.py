"""End-to-end wiring of the client with fake websocket and HTTP transports."""

import json
import pathlib
import sys

import httpx
import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notification_client.config import Settings
from notification_client.domain.entities import ConnectionStatus
from notification_client.main import create_client


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        api_base_url="http://api.test/api/v1",
        api_ws_base_url="ws://ws.test/api/v1",
        reconnect_base_delay_seconds=0.01,
        reconnect_max_delay_seconds=0.05,
        signal_cooldown_seconds=0,
    )


@pytest.fixture
def http_requests():
    return []


@pytest.fixture
def http_client(http_requests, record_factory):
    def handler(request):
        http_requests.append(request)
        if request.url.path == "/api/v1/auth/refresh":
            return httpx.Response(200, json={"access_token": "token-2"})
        if request.method == "PATCH":
            return httpx.Response(200, json=record_factory(id="rest", is_read=True))
        return httpx.Response(
            200,
            json={"items": [record_factory(id="rest", created_at="2024-05-01T08:00:00Z")], "total": 1},
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://api.test/api/v1")


@pytest.fixture
async def client(settings, transport, http_client, emitted):
    client = create_client(
        settings,
        transport=transport,
        http_client=http_client,
        signal_sink=lambda kind, message: emitted.append((kind, message)),
    )
    yield client
    await client.aclose()
    await http_client.aclose()


async def test_snapshot_and_live_updates_share_the_store(client, transport, eventually, record_factory, http_requests):
    assert client.connect("token-1", refresh_token="refresh-1") is True
    page = await client.list_view(limit=10).load()
    await eventually(lambda: client.status.status is ConnectionStatus.CONNECTED)

    transport.connections[0].push(json.dumps(record_factory(id="live", created_at="2024-05-01T09:00:00Z")))
    await eventually(lambda: "live" in client.store)

    assert [item.id for item in page.items] == ["rest"]
    assert client.store.ordered_ids == ["live", "rest"]
    assert client.store.unread_count == 2
    assert http_requests[0].headers["Authorization"] == "Bearer token-1"


async def test_mark_read_goes_through_the_rest_api(client, transport, eventually, http_requests):
    client.connect("token-1")
    await client.list_view().load()

    updated = await client.mark_read("rest", True)

    assert updated.is_read is True
    assert http_requests[-1].method == "PATCH"
    assert client.store.unread_count == 0


async def test_unauthorized_close_uses_refresh_token(client, transport, eventually, http_requests):
    client.connect("token-1", refresh_token="refresh-1")
    await eventually(lambda: client.manager.is_connected)

    transport.connections[0].drop(4401)
    await eventually(lambda: len(transport.connections) == 2 and client.manager.is_connected)

    assert client.access_token == "token-2"
    assert transport.urls[-1].endswith("token=token-2")
    assert http_requests[-1].url.path == "/api/v1/auth/refresh"


async def test_logout_clears_store_and_connection(client, eventually):
    client.connect("token-1")
    await client.list_view().load()
    await eventually(lambda: client.manager.is_connected)

    client.logout()

    assert len(client.store) == 0
    assert client.is_authenticated is False
    assert client.status.status is ConnectionStatus.DISCONNECTED
