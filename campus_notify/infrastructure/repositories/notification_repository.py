"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Query, Session

from campus_notify.domain.entities import Notification, NotificationType
from campus_notify.infrastructure.models import NotificationModel
from campus_notify.utils import (
    ensure_app_timezone,
    now_in_app_timezone,
    to_storage_datetime,
)


class NotificationNotFoundError(ValueError):
    """Raised when a notification does not exist for the requesting user."""

    def __init__(self, notification_id: int) -> None:
        super().__init__(f"Notification with id {notification_id} not found")
        self.notification_id = notification_id


class NotificationRepository:
    """Durable store of per-user notifications and their read state."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_for_user(
        self,
        user_id: int,
        *,
        limit: int | None = 20,
        offset: int = 0,
        unread_only: bool = False,
    ) -> Sequence[Notification]:
        """Return a page of ``user_id``'s notifications, newest first."""

        query = self._user_query(user_id, unread_only=unread_only).order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_for_user(self, user_id: int, *, unread_only: bool = False) -> int:
        return self._user_query(user_id, unread_only=unread_only).count()

    def count_unread(self, user_id: int) -> int:
        return self.count_for_user(user_id, unread_only=True)

    def get_for_user(self, notification_id: int, *, user_id: int) -> Notification | None:
        model = self._get_model(notification_id, user_id=user_id)
        return self._to_entity(model) if model else None

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        model.user_id = notification.user_id
        model.type = NotificationType.parse(notification.type).value
        model.title = notification.title
        model.message = notification.message
        model.data = dict(notification.data or {})
        model.created_at = to_storage_datetime(
            notification.created_at or now_in_app_timezone()
        )
        model.read_at = to_storage_datetime(notification.read_at)
        if notification.read and model.read_at is None:
            model.read_at = model.created_at
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(self, notification_id: int, *, user_id: int) -> bool:
        """Flip ``notification_id`` to read.

        The update only touches rows whose ``read_at`` is still empty, so
        concurrent writers converge on "read" and an already read row is left
        untouched. Returns ``True`` when this call changed the row.
        """

        updated = (
            self._user_query(user_id, unread_only=True)
            .filter(NotificationModel.id == notification_id)
            .update(
                {NotificationModel.read_at: to_storage_datetime(now_in_app_timezone())},
                synchronize_session=False,
            )
        )
        self.session.commit()
        if updated:
            return True
        if self._get_model(notification_id, user_id=user_id) is None:
            raise NotificationNotFoundError(notification_id)
        return False

    def mark_all_as_read(self, user_id: int) -> int:
        """Mark every unread notification of ``user_id`` as read; return the count."""

        updated = self._user_query(user_id, unread_only=True).update(
            {NotificationModel.read_at: to_storage_datetime(now_in_app_timezone())},
            synchronize_session=False,
        )
        self.session.commit()
        return int(updated or 0)

    def delete(self, notification_id: int, *, user_id: int) -> None:
        model = self._get_model(notification_id, user_id=user_id)
        if model is None:
            raise NotificationNotFoundError(notification_id)
        self.session.delete(model)
        self.session.commit()

    def _user_query(self, user_id: int, *, unread_only: bool) -> Query:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.user_id == user_id
        )
        if unread_only:
            query = query.filter(NotificationModel.read_at.is_(None))
        return query

    def _get_model(self, notification_id: int, *, user_id: int) -> NotificationModel | None:
        return (
            self.session.query(NotificationModel)
            .filter(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .one_or_none()
        )

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType.parse(model.type),
            title=model.title,
            message=model.message,
            data=dict(model.data or {}),
            read=model.read_at is not None,
            created_at=ensure_app_timezone(model.created_at),
            read_at=ensure_app_timezone(model.read_at),
        )


__all__ = ["NotificationNotFoundError", "NotificationRepository"]
