"""Pydantic schemas exposed by the API layer."""

from .notification import (
    NotificationMarkAllReadResult,
    NotificationMarkReadResult,
    NotificationPage,
    NotificationRead,
    UnreadCount,
)

__all__ = [
    "NotificationMarkAllReadResult",
    "NotificationMarkReadResult",
    "NotificationPage",
    "NotificationRead",
    "UnreadCount",
]
