"""Repository implementations for persistence."""

from .notification_repository import NotificationNotFoundError, NotificationRepository
from .user_repository import UserRepository

__all__ = [
    "NotificationNotFoundError",
    "NotificationRepository",
    "UserRepository",
]
