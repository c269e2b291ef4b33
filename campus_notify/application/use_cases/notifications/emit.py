"""Entry point collaborators use to notify a user."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sqlalchemy.orm import Session

from campus_notify.domain.entities import Notification, NotificationType
from campus_notify.infrastructure.notifications import (
    NotificationPublisher,
    notification_publisher,
)
from campus_notify.infrastructure.repositories import NotificationRepository
from campus_notify.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 120


def emit_notification(
    session: Session,
    *,
    user_id: int,
    notification_type: NotificationType | str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    publisher: NotificationPublisher | None = None,
) -> Notification:
    """Record a notification for ``user_id`` and push it if they are connected.

    The row is committed before the push is attempted, so a client that
    misses the push still finds the notification on its next backfill. A
    connected user also receives the refreshed unread total.
    """

    title = (title or "").strip()
    message = (message or "").strip()
    if not title:
        raise ValueError("Notification title cannot be empty")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValueError(f"Notification title cannot exceed {TITLE_MAX_LENGTH} characters")
    if not message:
        raise ValueError("Notification message cannot be empty")

    notification = Notification(
        id=None,
        user_id=user_id,
        type=NotificationType.parse(notification_type),
        title=title,
        message=message,
        data=dict(data or {}),
        read=False,
        created_at=now_in_app_timezone(),
    )
    repository = NotificationRepository(session)
    saved = repository.create(notification)

    publisher = publisher or notification_publisher
    unread_count = repository.count_unread(user_id) if publisher.is_connected(user_id) else None
    delivered = publisher.dispatch(saved, unread_count=unread_count)
    logger.info(
        "Notification %s (%s) recorded for user %s; pushed=%s",
        saved.id,
        saved.type.value,
        user_id,
        delivered,
    )
    return saved


def emit_notifications(
    session: Session,
    user_ids: Iterable[int | None],
    *,
    notification_type: NotificationType | str,
    title: str,
    message: str,
    data: dict[str, Any] | None = None,
    publisher: NotificationPublisher | None = None,
) -> list[Notification]:
    """Emit the same notification to each distinct user in ``user_ids``."""

    seen: set[int] = set()
    emitted: list[Notification] = []
    for user_id in user_ids:
        if not user_id or user_id in seen:
            continue
        seen.add(user_id)
        emitted.append(
            emit_notification(
                session,
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                data=data,
                publisher=publisher,
            )
        )
    return emitted


__all__ = ["emit_notification", "emit_notifications"]
