"""Client side mirror of a user's recent notifications."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from campus_notify.domain.entities import Notification
from campus_notify.utils import now_in_app_timezone

from .alerts import Alert, describe_alert

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 20


@dataclass(frozen=True)
class CacheState:
    """Immutable snapshot handed to listeners and UI adapters."""

    notifications: tuple[Notification, ...]
    unread_count: int


CacheListener = Callable[[CacheState], None]
AlertHandler = Callable[[Alert], None]


class NotificationCache:
    """Newest-first window of notifications with an incremental unread count.

    Local mutations (:meth:`apply_incoming_notification`,
    :meth:`mark_as_read`, :meth:`mark_all_as_read`) adjust the count in
    place. :meth:`apply_full_list` replaces everything with the server's view
    and recounts, and :meth:`apply_unread_count` adopts the server's total;
    both correct any drift. The cache is disposable: dropping it and
    refetching is always safe.
    """

    def __init__(
        self,
        *,
        capacity: int = DEFAULT_CAPACITY,
        on_alert: AlertHandler | None = None,
    ) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._notifications: list[Notification] = []
        self._unread_count = 0
        self._listeners: list[CacheListener] = []
        self._on_alert = on_alert
        self._fetch_ids = itertools.count(1)
        self._latest_fetch: int | None = None

    @property
    def notifications(self) -> tuple[Notification, ...]:
        return tuple(self._notifications)

    @property
    def unread_count(self) -> int:
        return self._unread_count

    def get_state(self) -> CacheState:
        return CacheState(notifications=tuple(self._notifications), unread_count=self._unread_count)

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        """Call ``listener`` after every change; returns an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def apply_incoming_notification(self, notification: Notification) -> None:
        """Prepend a pushed notification and announce it."""

        index = self._index_of(notification.id)
        is_new = index is None
        if index is not None:
            # Same notification delivered twice (push racing a backfill).
            previous = self._notifications.pop(index)
            if not previous.read:
                self._unread_count -= 1
            elif not notification.read:
                notification = notification.as_read(previous.read_at)

        self._notifications.insert(0, notification)
        if not notification.read:
            self._unread_count += 1
        self._trim()

        if is_new:
            self._announce(notification)
        self._notify()

    def begin_fetch(self) -> int:
        """Reserve an id for a full-list request; older ids become stale."""

        self._latest_fetch = next(self._fetch_ids)
        return self._latest_fetch

    def apply_full_list(
        self, notifications: Iterable[Notification], *, request_id: int | None = None
    ) -> bool:
        """Replace the cached window with ``notifications`` and recount unread.

        A response tagged with a ``request_id`` other than the latest one from
        :meth:`begin_fetch` is discarded and ``False`` is returned.
        """

        if request_id is not None and request_id != self._latest_fetch:
            logger.debug(
                "Discarding stale notification list %s (latest is %s)",
                request_id,
                self._latest_fetch,
            )
            return False

        self._notifications = list(notifications)[: self.capacity]
        self._unread_count = sum(1 for item in self._notifications if not item.read)
        self._notify()
        return True

    def apply_unread_count(self, count: int) -> None:
        """Adopt the server's unread total, which may exceed the cached window."""

        if count < 0:
            raise ValueError("unread count cannot be negative")
        if count == self._unread_count:
            return
        self._unread_count = count
        self._notify()

    def mark_as_read(self, notification_id: int) -> bool:
        """Flip a cached entry to read; ``False`` when nothing changed."""

        index = self._index_of(notification_id)
        if index is None:
            return False
        entry = self._notifications[index]
        if entry.read:
            return False
        self._notifications[index] = entry.as_read(now_in_app_timezone())
        self._unread_count = max(0, self._unread_count - 1)
        self._notify()
        return True

    def mark_all_as_read(self) -> int:
        """Flip every cached entry to read and zero the count."""

        now = now_in_app_timezone()
        flipped = 0
        for index, entry in enumerate(self._notifications):
            if not entry.read:
                self._notifications[index] = entry.as_read(now)
                flipped += 1
        self._unread_count = 0
        self._notify()
        return flipped

    def clear(self) -> None:
        self._notifications = []
        self._unread_count = 0
        self._latest_fetch = None
        self._notify()

    def _index_of(self, notification_id: int | None) -> int | None:
        if notification_id is None:
            return None
        for index, entry in enumerate(self._notifications):
            if entry.id == notification_id:
                return index
        return None

    def _trim(self) -> None:
        while len(self._notifications) > self.capacity:
            dropped = self._notifications.pop()
            if not dropped.read:
                self._unread_count = max(0, self._unread_count - 1)

    def _announce(self, notification: Notification) -> None:
        if self._on_alert is None:
            return
        try:
            self._on_alert(describe_alert(notification))
        except Exception:
            logger.exception("Alert handler failed for notification %s", notification.id)

    def _notify(self) -> None:
        state = self.get_state()
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Notification cache listener failed")


__all__ = ["CacheListener", "CacheState", "DEFAULT_CAPACITY", "NotificationCache"]
