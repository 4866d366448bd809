# src/taskflow/notifications/notification_store.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

from ..config import DEFAULT_NOTIFICATIONS_MAX
from ..core.events import SnapshotPublisher
from ..core.ids import notification_id
from ..storage.codec import NOTIFICATIONS_KEY, PersistenceCodec
from .notification_models import Notification

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class NotificationStore:
    """
    Bounded, newest-first activity log.

    Invariants:
    - index 0 is always the most recent notification,
    - never more than max_items entries (oldest are evicted),
    - "read" only flips false -> true, and only in bulk.
    """

    def __init__(
        self,
        codec: PersistenceCodec,
        *,
        key: str = NOTIFICATIONS_KEY,
        max_items: int = DEFAULT_NOTIFICATIONS_MAX,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_items < 1:
            raise ValueError("max_items must be >= 1")
        self._codec = codec
        self._key = key
        self._max_items = int(max_items)
        self._clock = clock
        self._events: SnapshotPublisher[tuple[Notification, ...]] = SnapshotPublisher(
            "NotificationStore"
        )

        loaded = codec.load_notifications(key) or []
        self._items: list[Notification] = loaded[: self._max_items]
        logger.info(
            "NotificationStore ready key=%s total=%d unread=%d",
            key,
            len(self._items),
            self.unread_count,
        )

    # ---- read side ----

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return tuple(self._items)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._items if not n.read)

    @property
    def max_items(self) -> int:
        return self._max_items

    def __len__(self) -> int:
        return len(self._items)

    def subscribe(
        self, listener: Callable[[tuple[Notification, ...]], None]
    ) -> Callable[[], None]:
        return self._events.subscribe(listener)

    # ---- mutations ----

    def _commit(self, items: list[Notification]) -> None:
        self._items = items[: self._max_items]
        self._codec.save_notifications(self._key, self._items)
        self._events.publish(self.notifications)

    def add_notification(self, message: str) -> Notification:
        n = Notification(
            id=notification_id(),
            message=str(message),
            timestamp=self._clock(),
            read=False,
        )
        self._commit([n, *self._items])
        logger.debug("Notification added id=%s message=%r", n.id, n.message)
        return n

    def mark_all_as_read(self) -> int:
        """Mark every notification read. Returns how many flipped."""
        unread = self.unread_count
        if unread == 0:
            return 0
        self._commit(
            [n if n.read else replace(n, read=True) for n in self._items]
        )
        logger.debug("Marked %d notifications as read", unread)
        return unread
