"""Composition root wiring the notification client together."""

from __future__ import annotations

import logging

import httpx

from notification_client.application.use_cases.notifications import (
    ConnectionStatusObserver,
    MarkNotificationRead,
    NotificationList,
    NotificationStore,
    NotificationStream,
)
from notification_client.config import Settings, get_settings
from notification_client.infrastructure.api_client import (
    AuthApiClient,
    NotificationsApiClient,
    create_http_client,
)
from notification_client.infrastructure.notifications import (
    ConnectionManager,
    SignalChannel,
    Transport,
    log_signal,
)
from notification_client.infrastructure.notifications.signals import SignalSink

logger = logging.getLogger(__name__)


class NotificationClient:
    """One client session: store, live connection and REST collaborators.

    Instances are created explicitly (see :func:`create_client`) and owned by
    the application; nothing here is a module-level singleton.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient,
        transport: Transport | None = None,
        signal_sink: SignalSink = log_signal,
        owns_http_client: bool = False,
    ) -> None:
        self.settings = settings
        self._http_client = http_client
        self._owns_http_client = owns_http_client
        self._access_token: str | None = None
        self._refresh_token: str | None = None

        self.signals = SignalChannel(signal_sink, cooldown=settings.signal_cooldown_seconds)
        self.store = NotificationStore()
        self.notifications_api = NotificationsApiClient(
            http_client, access_token=lambda: self._access_token
        )
        self.auth_api = AuthApiClient(http_client)
        self.manager = ConnectionManager.from_settings(
            settings,
            transport=transport,
            signals=self.signals,
            token_refresher=self._refresh_access_token,
        )
        self.stream = NotificationStream(
            self.manager, self.store, enabled=settings.notifications_ws_enabled
        )
        self.status = ConnectionStatusObserver(self.manager)
        self.mark_read = MarkNotificationRead(self.store, self.notifications_api, self.signals)
        self.status.attach()

    @property
    def access_token(self) -> str | None:
        return self._access_token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._access_token)

    def list_view(self, *, limit: int | None = None, offset: int = 0) -> NotificationList:
        return NotificationList(
            self.store,
            self.notifications_api,
            limit=limit,
            offset=offset,
            is_authenticated=lambda: self.is_authenticated,
        )

    def connect(self, access_token: str, refresh_token: str | None = None) -> bool:
        """Start the session with ``access_token`` and open the live stream."""

        self._access_token = access_token
        if refresh_token is not None:
            self._refresh_token = refresh_token
        return self.stream.update_session(access_token)

    def disconnect(self) -> None:
        """Stop the live stream; the store keeps its content."""

        self.stream.update_session(None)

    def logout(self) -> None:
        """Forget the session tokens, stop streaming and clear the store."""

        self._access_token = None
        self._refresh_token = None
        self.disconnect()
        self.store.reset()

    async def aclose(self) -> None:
        """Release the connection and, when owned, the HTTP client."""

        self.stream.stop()
        self.status.detach()
        await self.manager.aclose()
        if self._owns_http_client:
            await self._http_client.aclose()

    async def __aenter__(self) -> "NotificationClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _refresh_access_token(self) -> str | None:
        if not self._refresh_token:
            return None
        token = await self.auth_api.refresh(self._refresh_token)
        if token:
            logger.info("Access token refreshed for the notification stream")
            self._access_token = token
        return token


def create_client(
    settings: Settings | None = None,
    *,
    transport: Transport | None = None,
    signal_sink: SignalSink = log_signal,
    http_client: httpx.AsyncClient | None = None,
) -> NotificationClient:
    """Create and configure a :class:`NotificationClient`."""

    settings = settings or get_settings()
    owns_http_client = http_client is None
    return NotificationClient(
        settings,
        http_client=http_client or create_http_client(settings),
        transport=transport,
        signal_sink=signal_sink,
        owns_http_client=owns_http_client,
    )


__all__ = ["NotificationClient", "create_client"]
