"""Websocket transport used by the connection manager.

The manager only depends on the small :class:`Transport` protocol so tests
can drive it with in-memory fakes; :class:`WebSocketTransport` adapts the
``websockets`` client to it.
"""

from __future__ import annotations

from typing import Protocol

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, InvalidStatus

from notification_client.domain.entities.connection import (
    ABNORMAL_CLOSURE,
    NORMAL_CLOSURE,
    CloseEvent,
)


class TransportClosed(Exception):
    """Raised by a transport when the connection is (or was never) open."""

    def __init__(self, event: CloseEvent) -> None:
        super().__init__(f"connection closed ({event.code}) {event.reason}".rstrip())
        self.event = event


class TransportConnection(Protocol):
    async def recv(self) -> str | bytes:
        """Return the next frame or raise :class:`TransportClosed`."""

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Start the closing handshake."""


class Transport(Protocol):
    async def open(self, url: str) -> TransportConnection:
        """Open a connection to ``url``.

        Handshake rejections are reported as :class:`TransportClosed`; any
        other exception is treated as a transient construction failure.
        """


def close_event_from(exc: ConnectionClosed) -> CloseEvent:
    """Build a :class:`CloseEvent` from a ``websockets`` close exception."""

    frame = exc.rcvd
    if frame is None:
        return CloseEvent(code=ABNORMAL_CLOSURE)
    return CloseEvent(code=frame.code, reason=frame.reason)


class WebSocketConnection:
    """:class:`TransportConnection` backed by a ``websockets`` client."""

    def __init__(self, connection: ClientConnection) -> None:
        self._connection = connection

    async def recv(self) -> str | bytes:
        try:
            return await self._connection.recv()
        except ConnectionClosed as exc:
            raise TransportClosed(close_event_from(exc)) from exc

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        await self._connection.close(code, reason)


class WebSocketTransport:
    """Open notification websockets with the ``websockets`` asyncio client."""

    def __init__(self, *, open_timeout: float = 10.0) -> None:
        self._open_timeout = open_timeout

    async def open(self, url: str) -> WebSocketConnection:
        try:
            connection = await connect(url, open_timeout=self._open_timeout)
        except InvalidStatus as exc:
            status_code = exc.response.status_code
            raise TransportClosed(
                CloseEvent(code=status_code, reason=f"HTTP {status_code}")
            ) from exc
        return WebSocketConnection(connection)


__all__ = [
    "Transport",
    "TransportClosed",
    "TransportConnection",
    "WebSocketConnection",
    "WebSocketTransport",
    "close_event_from",
]
