"""Transient alert (toast) descriptions for incoming notifications."""

from __future__ import annotations

from dataclasses import dataclass

from campus_notify.domain.entities import Notification, NotificationType

ALERT_DURATION_SECONDS = 5.0

_ICONS: dict[NotificationType, str] = {
    NotificationType.BADGE_EARNED: "🏆",
    NotificationType.ACHIEVEMENT_UNLOCKED: "🎯",
    NotificationType.LEVEL_UP: "⬆️",
    NotificationType.STREAK_MILESTONE: "🔥",
    NotificationType.XP_GAINED: "✨",
}
_DEFAULT_ICON = "🔔"

# Gradient stops used by the web toast.
_ACCENTS: dict[NotificationType, tuple[str, str]] = {
    NotificationType.BADGE_EARNED: ("#ffd700", "#ffed4e"),
    NotificationType.ACHIEVEMENT_UNLOCKED: ("#10b981", "#34d399"),
    NotificationType.LEVEL_UP: ("#8b5cf6", "#a78bfa"),
    NotificationType.STREAK_MILESTONE: ("#f59e0b", "#fbbf24"),
}


@dataclass(frozen=True)
class Alert:
    notification_id: int | None
    type: NotificationType
    icon: str
    title: str
    description: str
    accent: tuple[str, str] | None = None
    duration: float = ALERT_DURATION_SECONDS

    @property
    def headline(self) -> str:
        return f"{self.icon} {self.title}"


def describe_alert(notification: Notification) -> Alert:
    """Return how ``notification`` should be announced to the user."""

    notification_type = NotificationType.parse(notification.type)
    return Alert(
        notification_id=notification.id,
        type=notification_type,
        icon=_ICONS.get(notification_type, _DEFAULT_ICON),
        title=notification.title,
        description=notification.message,
        accent=_ACCENTS.get(notification_type),
    )


__all__ = ["ALERT_DURATION_SECONDS", "Alert", "describe_alert"]
