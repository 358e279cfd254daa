"""Connection management for the notification websocket.

:class:`ConnectionManager` owns the single live transport of a client
session. It drives the pure state machine from
:mod:`notification_client.domain.entities.connection` and performs the side
effects around it: opening transports, validating inbound frames, reconnecting
with exponential backoff across the candidate endpoints and recovering once
from an expired session through a token refresher.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Coroutine, Sequence
from typing import Any, Callable

from pydantic import ValidationError

from notification_client.config import Settings
from notification_client.domain.entities.connection import (
    ABNORMAL_CLOSURE,
    NORMAL_CLOSURE,
    CloseEvent,
    ConnectionEvent,
    ConnectionStatus,
    ReconnectPlan,
    draw_jitter,
    is_unauthorized_close,
    transition,
)
from notification_client.domain.exceptions import (
    ConfigurationError,
    TokenExpiredError,
    TransportUnavailableError,
)
from notification_client.infrastructure.security import is_token_expired
from notification_client.interfaces.api.schemas import NotificationRead

from .endpoints import build_notifications_url, candidates_from_settings, sanitize_url
from .signals import (
    RECONNECTING_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    TRANSPORT_ERROR_MESSAGE,
    SignalChannel,
)
from .transport import Transport, TransportClosed, TransportConnection, WebSocketTransport

logger = logging.getLogger(__name__)

NotificationCallback = Callable[[dict[str, Any]], None]
StatusCallback = Callable[[ConnectionStatus], None]
SessionExpiredCallback = Callable[[], None]
TokenRefresher = Callable[[], Awaitable["str | None"]]

DEFAULT_RECONNECT_BASE_DELAY = 1.0
DEFAULT_RECONNECT_MAX_DELAY = 30.0


class ConnectionManager:
    """Keep one notification websocket alive for the current session."""

    def __init__(
        self,
        candidates: Sequence[str],
        *,
        transport: Transport | None = None,
        signals: SignalChannel | None = None,
        token_refresher: TokenRefresher | None = None,
        base_delay: float = DEFAULT_RECONNECT_BASE_DELAY,
        max_delay: float = DEFAULT_RECONNECT_MAX_DELAY,
        production: bool = False,
        jitter: Callable[[], float] = draw_jitter,
        token_expired: Callable[[str | None], bool] = is_token_expired,
    ) -> None:
        if not candidates:
            raise ConfigurationError("At least one websocket endpoint is required")
        for candidate in candidates:
            build_notifications_url(candidate, "probe", production=production)

        self._candidates = list(candidates)
        self._transport: Transport = transport or WebSocketTransport()
        self._signals = signals or SignalChannel()
        self._token_refresher = token_refresher
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._production = production
        self._jitter = jitter
        self._token_expired = token_expired

        self._status = ConnectionStatus.DISCONNECTED
        self._token: str | None = None
        self._connection: TransportConnection | None = None
        self._generation = 0
        self._intentional_close = False
        self._should_reconnect = True
        self._plan = ReconnectPlan()
        self._preferred_index = 0
        self._refresh_requested = False
        self._refresh_attempted = False
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closing: set[asyncio.Task[None]] = set()

        self._notification_listeners: set[NotificationCallback] = set()
        self._status_listeners: set[StatusCallback] = set()
        self._session_expired_listeners: set[SessionExpiredCallback] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: Transport | None = None,
        signals: SignalChannel | None = None,
        token_refresher: TokenRefresher | None = None,
    ) -> "ConnectionManager":
        """Build a manager whose candidates and delays come from ``settings``."""

        return cls(
            candidates_from_settings(settings),
            transport=transport
            or WebSocketTransport(open_timeout=settings.ws_open_timeout_seconds),
            signals=signals or SignalChannel(cooldown=settings.signal_cooldown_seconds),
            token_refresher=token_refresher,
            base_delay=settings.reconnect_base_delay_seconds,
            max_delay=settings.reconnect_max_delay_seconds,
            production=settings.is_production,
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def candidates(self) -> list[str]:
        return list(self._candidates)

    @property
    def current_endpoint(self) -> str:
        return self._candidates[self._plan.candidate_index]

    @property
    def preferred_endpoint(self) -> str:
        return self._candidates[self._preferred_index]

    @property
    def plan(self) -> ReconnectPlan:
        return self._plan

    # ------------------------------------------------------------------
    # Public lifecycle
    # ------------------------------------------------------------------
    def connect(self, token: str) -> None:
        """Open the notification stream authenticated with ``token``.

        Raises :class:`ValueError` for an empty token,
        :class:`TransportUnavailableError` outside a running event loop and
        :class:`TokenExpiredError` when the token's ``exp`` claim already
        passed. The expiry check reads the claim without verifying the
        signature; it only saves a doomed connection attempt. An expired
        token also closes any live connection, leaving the manager
        ``disconnected``.
        """

        if not token:
            raise ValueError("JWT token is required to connect to notifications websocket")
        try:
            asyncio.get_running_loop()
        except RuntimeError as exc:
            raise TransportUnavailableError(
                "WebSocket connections require a running asyncio event loop"
            ) from exc
        if self._token_expired(token):
            logger.warning("NotificationWS refused to connect with an expired token")
            self.disconnect()
            raise TokenExpiredError("The access token has already expired")

        self._teardown("Reconnecting")
        self._token = token
        self._intentional_close = False
        self._should_reconnect = True
        self._refresh_requested = False
        self._refresh_attempted = False
        self._plan = ReconnectPlan.initial(self._preferred_index)
        self._open_transport()

    def disconnect(self) -> None:
        """Close the stream on purpose and stop every reconnect attempt."""

        self._intentional_close = True
        self._should_reconnect = False
        self._token = None
        self._refresh_requested = False
        self._plan = ReconnectPlan.initial(self._preferred_index)
        self._teardown("Client disconnect")
        self._apply(ConnectionEvent.DISCONNECT_REQUESTED)

    def dispose(self) -> None:
        """Disconnect and drop every registered listener."""

        self.disconnect()
        self._notification_listeners.clear()
        self._status_listeners.clear()
        self._session_expired_listeners.clear()

    async def aclose(self) -> None:
        """Dispose the manager and wait for background work to finish."""

        self.dispose()
        for task in list(self._tasks):
            if task not in self._closing:
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def on_notification(self, callback: NotificationCallback) -> Callable[[], None]:
        """Register ``callback`` for every valid inbound notification frame."""

        self._notification_listeners.add(callback)
        return lambda: self._notification_listeners.discard(callback)

    def on_status_change(self, callback: StatusCallback) -> Callable[[], None]:
        """Register ``callback`` and replay the current status to it."""

        self._status_listeners.add(callback)
        self._call_listener(callback, self._status, "status")
        return lambda: self._status_listeners.discard(callback)

    def on_session_expired(self, callback: SessionExpiredCallback) -> Callable[[], None]:
        """Register ``callback`` for the terminal session-expired condition."""

        self._session_expired_listeners.add(callback)
        return lambda: self._session_expired_listeners.discard(callback)

    # ------------------------------------------------------------------
    # Transport handling
    # ------------------------------------------------------------------
    def _open_transport(self) -> None:
        if not self._should_reconnect or self._token is None:
            return

        self._cancel_reconnect()
        self._intentional_close = False
        url = build_notifications_url(
            self.current_endpoint, self._token, production=self._production
        )
        self._generation += 1
        generation = self._generation
        self._apply(ConnectionEvent.CONNECT_REQUESTED)
        logger.info("NotificationWS connecting to %s", sanitize_url(url))
        self._spawn(self._run_transport(generation, url))

    async def _run_transport(self, generation: int, url: str) -> None:
        try:
            connection = await self._transport.open(url)
        except TransportClosed as closed:
            self._handle_close(generation, closed.event, opened=False)
            return
        except Exception as exc:
            if generation == self._generation:
                logger.warning("NotificationWS connection error: %s", exc)
                self._signals.info(TRANSPORT_ERROR_MESSAGE)
            self._handle_close(generation, CloseEvent(code=ABNORMAL_CLOSURE), opened=False)
            return

        if generation != self._generation:
            await self._close_quietly(connection, "Superseded")
            return

        self._connection = connection
        self._handle_open(url)

        while True:
            try:
                frame = await connection.recv()
            except TransportClosed as closed:
                self._handle_close(generation, closed.event, opened=True)
                return
            except Exception as exc:
                if generation != self._generation:
                    return
                logger.warning("NotificationWS encountered an error: %s", exc)
                self._signals.info(TRANSPORT_ERROR_MESSAGE)
                self._handle_close(generation, CloseEvent(code=ABNORMAL_CLOSURE), opened=True)
                await self._close_quietly(connection, "Transport error")
                return

            if generation != self._generation:
                return
            self._handle_frame(frame)

    def _handle_open(self, url: str) -> None:
        self._plan = ReconnectPlan.initial(self._plan.candidate_index)
        self._preferred_index = self._plan.candidate_index
        self._refresh_attempted = False
        self._should_reconnect = True
        self._apply(ConnectionEvent.OPENED)
        logger.info("NotificationWS connected %s", sanitize_url(url))

    def _handle_frame(self, frame: str | bytes) -> None:
        if not isinstance(frame, str):
            logger.warning("NotificationWS received non-string message")
            return

        try:
            parsed = json.loads(frame)
        except ValueError as exc:
            logger.warning("NotificationWS failed to parse message: %s", exc)
            return

        try:
            NotificationRead.model_validate(parsed)
        except ValidationError:
            logger.warning("NotificationWS received invalid payload")
            return

        for listener in list(self._notification_listeners):
            self._call_listener(listener, parsed, "notification")

    def _handle_close(self, generation: int, event: CloseEvent, *, opened: bool) -> None:
        if generation != self._generation:
            return

        self._connection = None
        self._apply(ConnectionEvent.CLOSED)

        if self._intentional_close or not self._should_reconnect:
            logger.info("NotificationWS disconnected")
            return

        # A 1000 close that names an auth failure in its reason is not clean.
        token_expired = self._token_expired(self._token)
        if is_unauthorized_close(event, token_expired=token_expired):
            if self._token_refresher is not None and not self._refresh_attempted:
                logger.warning(
                    "NotificationWS unauthorized close (%s); refreshing token", event.code
                )
                self._refresh_requested = True
                self._schedule_reconnect()
                return
            self._stop_session_expired(event.code)
            return

        if event.code == NORMAL_CLOSURE:
            logger.info("NotificationWS closed cleanly by the server")
            return

        if not opened:
            self._advance_candidate()

        logger.warning("NotificationWS connection closed (%s) - scheduling retry", event.code)
        self._signals.info(RECONNECTING_MESSAGE)
        self._schedule_reconnect()

    def _advance_candidate(self) -> None:
        next_index = (self._plan.candidate_index + 1) % len(self._candidates)
        if next_index != self._plan.candidate_index:
            logger.info(
                "NotificationWS falling back to %s", self._candidates[next_index]
            )
        self._plan = self._plan.with_candidate(next_index)

    # ------------------------------------------------------------------
    # Reconnection
    # ------------------------------------------------------------------
    def _schedule_reconnect(self) -> None:
        if not self._should_reconnect:
            return
        if self._token is None and self._token_refresher is None:
            return

        self._cancel_reconnect()
        self._plan = self._plan.schedule(
            base_delay=self._base_delay, max_delay=self._max_delay, jitter=self._jitter
        )
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self._plan.delay, self._fire_reconnect)
        logger.info(
            "NotificationWS reconnect attempt %d in %.2fs", self._plan.attempt, self._plan.delay
        )

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        if not self._should_reconnect:
            return
        self._reconnect_task = self._spawn(self._reconnect())

    async def _reconnect(self) -> None:
        token = self._token
        refresher = self._token_refresher
        if refresher is not None and (
            self._refresh_requested or token is None or self._token_expired(token)
        ):
            rejected = self._refresh_requested
            self._refresh_requested = False
            self._refresh_attempted = True
            fresh = await self._refresh_token(refresher)
            if not self._should_reconnect:
                return
            if fresh:
                self._token = token = fresh
            elif rejected:
                token = None

        if not self._should_reconnect:
            return
        self._reconnect_task = None
        if token is None or self._token_expired(token):
            self._stop_session_expired(None)
            return

        logger.info("NotificationWS attempting reconnect")
        self._open_transport()

    async def _refresh_token(self, refresher: TokenRefresher) -> str | None:
        try:
            token = await refresher()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning("NotificationWS token refresh failed: %s", exc)
            return None
        return token or None

    def _stop_session_expired(self, code: int | None) -> None:
        logger.warning("NotificationWS stopped due to unauthorized response (%s)", code)
        self._should_reconnect = False
        self._token = None
        self._refresh_requested = False
        self._cancel_reconnect()
        self._apply(ConnectionEvent.CLOSED)
        self._signals.error(SESSION_EXPIRED_MESSAGE)
        for listener in list(self._session_expired_listeners):
            try:
                listener()
            except Exception:
                logger.exception("NotificationWS session listener error")

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _teardown(self, reason: str) -> None:
        self._cancel_reconnect()
        self._generation += 1
        connection = self._connection
        self._connection = None
        if connection is not None:
            task = self._spawn(self._close_quietly(connection, reason))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)
        if self._status is not ConnectionStatus.DISCONNECTED:
            self._apply(ConnectionEvent.CLOSED)

    async def _close_quietly(self, connection: TransportConnection, reason: str) -> None:
        try:
            await connection.close(NORMAL_CLOSURE, reason)
        except Exception as exc:
            logger.debug("NotificationWS close failed: %s", exc)

    def _apply(self, event: ConnectionEvent) -> None:
        status = transition(self._status, event)
        if status is self._status:
            return
        self._status = status
        for listener in list(self._status_listeners):
            self._call_listener(listener, status, "status")

    def _call_listener(self, listener: Callable[[Any], None], value: Any, kind: str) -> None:
        try:
            listener(value)
        except Exception:
            logger.exception("NotificationWS %s listener error", kind)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


__all__ = [
    "ConnectionManager",
    "NotificationCallback",
    "SessionExpiredCallback",
    "StatusCallback",
    "TokenRefresher",
]
