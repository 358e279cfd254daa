"""Normalized in-memory cache of notifications with derived views."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from types import MappingProxyType
from typing import Callable

from notification_client.domain.entities import NotificationEntity
from notification_client.utils import utc_now

logger = logging.getLogger(__name__)

StoreListener = Callable[["NotificationStore"], None]

# Fields compared when deciding whether a merge changed anything.
_MERGE_FIELDS = (
    "is_read",
    "read_at",
    "created_at",
    "title",
    "message",
    "type",
    "payload",
    "meta",
)


def _merge(existing: NotificationEntity, incoming: NotificationEntity) -> NotificationEntity:
    if incoming.meta is None and existing.meta is not None:
        return replace(incoming, meta=existing.meta)
    return incoming


def _has_difference(existing: NotificationEntity, merged: NotificationEntity) -> bool:
    return any(
        getattr(existing, field) != getattr(merged, field) for field in _MERGE_FIELDS
    )


class NotificationStore:
    """Entity-by-id cache plus a newest-first ordering and unread counter.

    All mutations go through the public operations; the derived views are
    recomputed from the entities after every state-changing call and are
    never written independently.
    """

    def __init__(self, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._entities: dict[str, NotificationEntity] = {}
        self._ids: list[str] = []
        self._unread_count = 0
        self._listeners: set[StoreListener] = set()

    # ------------------------------------------------------------------
    # Derived reads
    # ------------------------------------------------------------------
    @property
    def entities(self) -> Mapping[str, NotificationEntity]:
        return MappingProxyType(self._entities)

    @property
    def ordered_ids(self) -> list[str]:
        return list(self._ids)

    @property
    def unread_count(self) -> int:
        return self._unread_count

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, notification_id: object) -> bool:
        return notification_id in self._entities

    def get(self, notification_id: str) -> NotificationEntity | None:
        return self._entities.get(notification_id)

    def ordered(self) -> list[NotificationEntity]:
        """Return the entities newest first."""

        return [self._entities[notification_id] for notification_id in self._ids]

    def page(self, limit: int | None = None, offset: int = 0) -> list[NotificationEntity]:
        """Return a slice of the ordered view; no ``limit`` means up to the end."""

        if offset < 0:
            raise ValueError("offset must be non-negative")
        if limit is not None and limit < 0:
            raise ValueError("limit must be non-negative")

        ordered = self.ordered()
        if limit is None:
            return ordered[offset:]
        return ordered[offset : offset + limit]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def upsert_many(self, notifications: Iterable[NotificationEntity]) -> bool:
        """Insert or merge ``notifications``; return whether anything changed."""

        changed = False
        for notification in notifications:
            existing = self._entities.get(notification.id)
            if existing is None:
                self._entities[notification.id] = notification
                changed = True
                continue

            merged = _merge(existing, notification)
            if _has_difference(existing, merged):
                self._entities[notification.id] = merged
                changed = True

        if changed:
            self._recalculate()
        return changed

    def upsert_one(self, notification: NotificationEntity | None) -> bool:
        """Upsert a single entity; ``None`` (failed normalization) is ignored."""

        if notification is None:
            return False
        return self.upsert_many([notification])

    def mark_read(
        self,
        notification_id: str,
        is_read: bool,
        read_at: datetime | None = None,
    ) -> bool:
        """Change the read state of an existing notification.

        This is an update, not an upsert: unknown ids are ignored. Without an
        explicit ``read_at`` a read notification keeps its previous timestamp
        (or gets "now") and an unread one has it cleared.
        """

        existing = self._entities.get(notification_id)
        if existing is None:
            return False

        if read_at is None:
            if is_read:
                read_at = existing.read_at if existing.is_read and existing.read_at else self._clock()
        elif not is_read:
            read_at = None

        self._entities[notification_id] = replace(existing, is_read=is_read, read_at=read_at)
        self._recalculate()
        return True

    def replace_notification(self, notification: NotificationEntity) -> None:
        """Overwrite the entity stored under ``notification.id``."""

        self._entities[notification.id] = notification
        self._recalculate()

    def reset(self) -> None:
        """Forget every notification, e.g. after logout."""

        self._entities.clear()
        self._recalculate()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Call ``listener`` after every state change until unsubscribed."""

        self._listeners.add(listener)

        def unsubscribe() -> None:
            self._listeners.discard(listener)

        return unsubscribe

    def _recalculate(self) -> None:
        ordered = sorted(
            self._entities.values(), key=lambda entity: entity.sort_key, reverse=True
        )
        self._ids = [entity.id for entity in ordered]
        self._unread_count = sum(1 for entity in ordered if not entity.is_read)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("NotificationStore listener failed")


__all__ = ["NotificationStore", "StoreListener"]
