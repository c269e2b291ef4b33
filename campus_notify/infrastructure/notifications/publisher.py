"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

import logging

from campus_notify.domain.entities import Notification

from .protocol import notification_message, unread_count_message
from .registry import NotificationConnectionRegistry, notification_registry

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Serialize notifications and hand them to the recipient's live channel."""

    def __init__(self, registry: NotificationConnectionRegistry) -> None:
        self._registry = registry

    def is_connected(self, user_id: int) -> bool:
        return self._registry.is_connected(user_id)

    def dispatch(self, notification: Notification, *, unread_count: int | None = None) -> bool:
        """Push ``notification`` to its user if connected.

        When ``unread_count`` is given it follows the notification as an
        ``unread_count`` frame. Delivery is best effort. The return value only
        says whether a frame was queued on an open channel; the durable copy
        is what guarantees the user eventually sees it.
        """

        connection = self._registry.lookup(notification.user_id)
        if connection is None:
            logger.debug(
                "User %s has no open push channel; notification %s left for backfill",
                notification.user_id,
                notification.id,
            )
            return False
        delivered = connection.push(notification_message(notification))
        if delivered and unread_count is not None:
            connection.push(unread_count_message(unread_count))
        return delivered


notification_publisher = NotificationPublisher(notification_registry)


def dispatch_notification(notification: Notification, *, unread_count: int | None = None) -> bool:
    """Public helper that delegates to the shared publisher instance."""

    return notification_publisher.dispatch(notification, unread_count=unread_count)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "dispatch_notification",
]
