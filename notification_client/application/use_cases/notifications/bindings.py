"""Consumer bindings between the store, the live stream and the REST API.

These are the pieces UI code talks to: they keep the REST snapshot and the
pushed notifications flowing through the same store merge path and apply
read acknowledgements optimistically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from notification_client.domain.entities import ConnectionStatus, NotificationEntity
from notification_client.domain.exceptions import NotificationClientError
from notification_client.infrastructure.api_client import DEFAULT_PAGE_SIZE
from notification_client.infrastructure.notifications import ConnectionManager, SignalChannel
from notification_client.infrastructure.notifications.signals import MARK_READ_FAILED_MESSAGE
from notification_client.interfaces.api.schemas import NotificationListResponse

from .normalize import normalize_many, normalize_notification
from .store import NotificationStore

logger = logging.getLogger(__name__)


class NotificationsApi(Protocol):
    async def list_notifications(
        self, *, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> NotificationListResponse: ...

    async def update_notification(self, notification_id: str, *, is_read: bool) -> dict | None: ...


@dataclass(frozen=True)
class NotificationPage:
    """Items of one list view together with the server pagination info."""

    items: list[NotificationEntity] = field(default_factory=list)
    total: int = 0
    limit: int = 0
    offset: int = 0


class NotificationList:
    """List view fed by a REST snapshot and kept current by the store.

    The snapshot is merged through the same path as pushed notifications, so
    the items always come from the store's ordered view.
    """

    def __init__(
        self,
        store: NotificationStore,
        api: NotificationsApi,
        *,
        limit: int | None = None,
        offset: int = 0,
        is_authenticated: Callable[[], bool] = lambda: True,
    ) -> None:
        self._store = store
        self._api = api
        self.limit = limit
        self.offset = offset
        self._is_authenticated = is_authenticated
        self._total: int | None = None

    async def load(self, limit: int | None = None, offset: int | None = None) -> NotificationPage:
        """Fetch the snapshot, merge it into the store and return the page."""

        if limit is not None:
            self.limit = limit
        if offset is not None:
            self.offset = offset

        if not self._is_authenticated():
            self._total = None
            return NotificationPage(limit=self.limit or 0, offset=self.offset)

        response = await self._api.list_notifications(
            limit=self.limit if self.limit is not None else DEFAULT_PAGE_SIZE,
            offset=self.offset,
        )
        self._store.upsert_many(normalize_many(response.items))
        self._total = response.total

        items = self.items()
        return NotificationPage(
            items=items,
            total=response.total,
            limit=response.limit or self.limit or len(items),
            offset=response.offset,
        )

    def items(self) -> list[NotificationEntity]:
        """Return the current items, read from the store."""

        if not self._is_authenticated():
            return []
        return self._store.page(self.limit, self.offset)

    @property
    def total(self) -> int:
        """Server total of the last load, or the page length before any load."""

        if not self._is_authenticated():
            return 0
        if self._total is None:
            return len(self.items())
        return self._total


class NotificationStream:
    """Keep the websocket connected while a session token is available."""

    def __init__(
        self,
        manager: ConnectionManager,
        store: NotificationStore,
        *,
        enabled: bool = True,
    ) -> None:
        self._manager = manager
        self._store = store
        self._enabled = enabled
        self._token: str | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    def update_session(self, token: str | None) -> bool:
        """Connect for ``token``; ``None`` disconnects. Return whether streaming."""

        if not self._enabled or not token:
            self.stop()
            return False
        if token == self._token and self.active:
            return True

        self.stop()
        self._unsubscribe = self._manager.on_notification(self._on_notification)
        try:
            self._manager.connect(token)
        except (ValueError, NotificationClientError) as exc:
            logger.error("NotificationStream: failed to connect websocket: %s", exc)
            self.stop()
            return False
        self._token = token
        return True

    def stop(self) -> None:
        """Unregister the store callback and close the connection."""

        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        self._token = None
        if unsubscribe is not None:
            unsubscribe()
        self._manager.disconnect()

    def _on_notification(self, payload: dict) -> None:
        self._store.upsert_one(normalize_notification(payload))


class ConnectionStatusObserver:
    """Expose the connection status, ``disconnected`` until attached."""

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager
        self._status = ConnectionStatus.DISCONNECTED
        self._unsubscribe: Callable[[], None] | None = None
        self._listeners: set[Callable[[ConnectionStatus], None]] = set()

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def attach(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._manager.on_status_change(self._update)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def subscribe(self, listener: Callable[[ConnectionStatus], None]) -> Callable[[], None]:
        self._listeners.add(listener)
        return lambda: self._listeners.discard(listener)

    def _update(self, status: ConnectionStatus) -> None:
        if status is self._status:
            return
        self._status = status
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception:
                logger.exception("ConnectionStatusObserver listener failed")


class MarkNotificationRead:
    """Optimistically change the read state and reconcile with the server."""

    def __init__(
        self,
        store: NotificationStore,
        api: NotificationsApi,
        signals: SignalChannel,
    ) -> None:
        self._store = store
        self._api = api
        self._signals = signals

    async def __call__(self, notification_id: str, is_read: bool) -> NotificationEntity | None:
        previous = self._store.get(notification_id)
        self._store.mark_read(notification_id, is_read)

        try:
            updated = await self._api.update_notification(notification_id, is_read=is_read)
        except Exception:
            if previous is not None:
                self._store.replace_notification(previous)
            self._signals.error(MARK_READ_FAILED_MESSAGE)
            logger.exception(
                "MarkNotificationRead: failed to update notification %s", notification_id
            )
            raise

        if updated:
            self._store.upsert_one(normalize_notification(updated))
        return self._store.get(notification_id)


def unread_count(store: NotificationStore) -> int:
    return store.unread_count


__all__ = [
    "ConnectionStatusObserver",
    "MarkNotificationRead",
    "NotificationList",
    "NotificationPage",
    "NotificationStream",
    "NotificationsApi",
    "unread_count",
]
