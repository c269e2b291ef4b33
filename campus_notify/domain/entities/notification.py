"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Closed set of notification kinds understood by clients."""

    BADGE_EARNED = "BADGE_EARNED"
    ACHIEVEMENT_UNLOCKED = "ACHIEVEMENT_UNLOCKED"
    LEVEL_UP = "LEVEL_UP"
    STREAK_MILESTONE = "STREAK_MILESTONE"
    XP_GAINED = "XP_GAINED"
    GENERIC = "GENERIC"

    @classmethod
    def parse(cls, value: "str | NotificationType | None") -> "NotificationType":
        """Return the member matching ``value`` (case-insensitive) or ``GENERIC``."""

        if isinstance(value, cls):
            return value
        if not value:
            return cls.GENERIC
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.GENERIC


@dataclass(frozen=True)
class Notification:
    """Information message delivered to exactly one user.

    Instances are immutable; the only state change a notification goes
    through is being read, which :meth:`as_read` expresses by returning a new
    instance. ``read`` never goes back to ``False``.
    """

    id: int | None
    user_id: int
    type: NotificationType
    title: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)
    read: bool = False
    created_at: datetime | None = None
    read_at: datetime | None = None

    def as_read(self, when: datetime | None = None) -> "Notification":
        if self.read:
            return self
        return replace(self, read=True, read_at=when or self.read_at)


__all__ = ["Notification", "NotificationType"]
