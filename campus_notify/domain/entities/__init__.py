"""Domain entities exposed by the application."""

from .connection import ConnectionState
from .notification import Notification, NotificationType
from .user import User

__all__ = [
    "ConnectionState",
    "Notification",
    "NotificationType",
    "User",
]
