"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from campus_notify.domain.entities import Notification, NotificationType


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    read: bool
    created_at: datetime
    read_at: datetime | None = None

    @classmethod
    def from_entity(cls, notification: Notification) -> "NotificationRead":
        return cls(
            id=notification.id or 0,
            user_id=notification.user_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            data=notification.data or {},
            read=notification.read,
            created_at=notification.created_at,
            read_at=notification.read_at,
        )


class NotificationPage(BaseModel):
    """A page of notifications plus the counters the dropdown needs."""

    notifications: list[NotificationRead]
    unread_count: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    limit: int
    offset: int


class UnreadCount(BaseModel):
    unread_count: int = Field(..., ge=0)


class NotificationMarkReadResult(BaseModel):
    """Outcome of marking one notification as read."""

    id: int
    read: bool = True
    changed: bool = Field(
        ..., description="False when the notification was already marked as read"
    )


class NotificationMarkAllReadResult(BaseModel):
    updated: int = Field(..., ge=0)


__all__ = [
    "NotificationMarkAllReadResult",
    "NotificationMarkReadResult",
    "NotificationPage",
    "NotificationRead",
    "UnreadCount",
]
