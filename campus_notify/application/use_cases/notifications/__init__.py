"""Public helpers for emitting domain notifications."""

from .emit import emit_notification, emit_notifications
from .events import (
    XP_NOTIFICATION_THRESHOLD,
    notify_achievement_unlocked,
    notify_badge_earned,
    notify_level_up,
    notify_streak_milestone,
    notify_xp_gained,
)

__all__ = [
    "emit_notification",
    "emit_notifications",
    "XP_NOTIFICATION_THRESHOLD",
    "notify_achievement_unlocked",
    "notify_badge_earned",
    "notify_level_up",
    "notify_streak_milestone",
    "notify_xp_gained",
]
