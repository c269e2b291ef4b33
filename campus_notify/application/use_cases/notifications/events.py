"""Gamification events translated into user notifications."""

from __future__ import annotations

from sqlalchemy.orm import Session

from campus_notify.domain.entities import Notification, NotificationType

from .emit import emit_notification

# Smaller XP grants are too frequent to be worth a notification.
XP_NOTIFICATION_THRESHOLD = 50


def notify_badge_earned(
    session: Session,
    *,
    user_id: int,
    badge_id: str | int,
    badge_name: str,
    badge_icon: str | None = None,
    badge_rarity: str | None = None,
    xp_gained: int = 0,
    crolars_gained: int = 0,
) -> Notification:
    """Tell a user they unlocked a badge."""

    return emit_notification(
        session,
        user_id=user_id,
        notification_type=NotificationType.BADGE_EARNED,
        title="¡Insignia Desbloqueada!",
        message=f'Has ganado la insignia "{badge_name}"',
        data={
            "badge_id": badge_id,
            "badge_name": badge_name,
            "badge_icon": badge_icon,
            "badge_rarity": badge_rarity,
            "xp_gained": xp_gained,
            "crolars_gained": crolars_gained,
        },
    )


def notify_achievement_unlocked(
    session: Session,
    *,
    user_id: int,
    achievement_id: str | int,
    achievement_name: str,
    achievement_type: str | None = None,
    xp_reward: int = 0,
    crolars_reward: int = 0,
    badge_id: str | int | None = None,
    badge_name: str | None = None,
) -> Notification:
    """Tell a user they completed an achievement."""

    return emit_notification(
        session,
        user_id=user_id,
        notification_type=NotificationType.ACHIEVEMENT_UNLOCKED,
        title="¡Logro Desbloqueado!",
        message=f'Has completado el logro "{achievement_name}"',
        data={
            "achievement_id": achievement_id,
            "achievement_name": achievement_name,
            "achievement_type": achievement_type,
            "xp_reward": xp_reward,
            "crolars_reward": crolars_reward,
            "badge_id": badge_id,
            "badge_name": badge_name,
        },
    )


def notify_level_up(
    session: Session,
    *,
    user_id: int,
    old_level: int,
    new_level: int,
    total_xp: int | None = None,
    xp_for_next_level: int | None = None,
    crolars_reward: int = 0,
) -> Notification:
    return emit_notification(
        session,
        user_id=user_id,
        notification_type=NotificationType.LEVEL_UP,
        title="¡Subiste de Nivel!",
        message=f"¡Felicidades! Ahora eres nivel {new_level}",
        data={
            "old_level": old_level,
            "new_level": new_level,
            "total_xp": total_xp,
            "xp_for_next_level": xp_for_next_level,
            "crolars_reward": crolars_reward,
        },
    )


def notify_streak_milestone(
    session: Session,
    *,
    user_id: int,
    streak_days: int,
    streak_type: str = "daily_login",
    xp_bonus: int = 0,
    crolars_bonus: int = 0,
) -> Notification:
    return emit_notification(
        session,
        user_id=user_id,
        notification_type=NotificationType.STREAK_MILESTONE,
        title="¡Racha Increíble!",
        message=f"¡Has alcanzado una racha de {streak_days} días!",
        data={
            "streak_days": streak_days,
            "streak_type": streak_type,
            "xp_bonus": xp_bonus,
            "crolars_bonus": crolars_bonus,
        },
    )


def notify_xp_gained(
    session: Session,
    *,
    user_id: int,
    xp_gained: int,
    source: str = "unknown",
    activity: str | None = None,
    total_xp: int | None = None,
    crolars_gained: int = 0,
) -> Notification | None:
    """Notify a significant XP grant; returns ``None`` below the threshold."""

    if xp_gained < XP_NOTIFICATION_THRESHOLD:
        return None

    return emit_notification(
        session,
        user_id=user_id,
        notification_type=NotificationType.XP_GAINED,
        title="¡XP Ganada!",
        message=f"Has ganado {xp_gained} puntos de experiencia",
        data={
            "xp_gained": xp_gained,
            "source": source,
            "activity": activity,
            "total_xp": total_xp,
            "crolars_gained": crolars_gained,
        },
    )


__all__ = [
    "XP_NOTIFICATION_THRESHOLD",
    "notify_achievement_unlocked",
    "notify_badge_earned",
    "notify_level_up",
    "notify_streak_milestone",
    "notify_xp_gained",
]
