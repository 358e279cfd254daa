"""Shared fixtures: in-memory websocket transport and notification records."""

import asyncio
import pathlib
import sys

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from notification_client.domain.entities import CloseEvent
from notification_client.infrastructure.notifications import SignalChannel, TransportClosed


class FakeConnection:
    """Connection whose frames are pushed by the test."""

    def __init__(self):
        self._frames = asyncio.Queue()
        self.closed_with = None

    def push(self, frame):
        self._frames.put_nowait(frame)

    def drop(self, code, reason=""):
        self._frames.put_nowait(CloseEvent(code=code, reason=reason))

    async def recv(self):
        item = await self._frames.get()
        if isinstance(item, CloseEvent):
            raise TransportClosed(item)
        return item

    async def close(self, code=1000, reason=""):
        self.closed_with = (code, reason)
        self._frames.put_nowait(CloseEvent(code=code, reason=reason))


class FakeTransport:
    """Records opened URLs; queued failures are raised by the next opens."""

    def __init__(self):
        self.urls = []
        self.connections = []
        self.failures = []

    async def open(self, url):
        self.urls.append(url)
        if self.failures:
            failure = self.failures.pop(0)
            if isinstance(failure, CloseEvent):
                raise TransportClosed(failure)
            raise failure
        connection = FakeConnection()
        self.connections.append(connection)
        return connection


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def signals(emitted):
    return SignalChannel(lambda kind, message: emitted.append((kind, message)), cooldown=0)


@pytest.fixture
def eventually():
    async def wait(predicate, timeout=1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not reached in time")
            await asyncio.sleep(0.001)

    return wait


def make_record(**overrides):
    record = {
        "id": "n-1",
        "user_id": "u-1",
        "type": "generic",
        "title": "Hola",
        "message": "Tienes una notificacion",
        "payload": None,
        "is_read": False,
        "created_at": "2024-05-01T10:00:00Z",
        "read_at": None,
    }
    record.update(overrides)
    return record


@pytest.fixture
def record_factory():
    return make_record
