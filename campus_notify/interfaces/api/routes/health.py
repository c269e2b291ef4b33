"""Liveness endpoint."""

from fastapi import APIRouter

from campus_notify.infrastructure.notifications import notification_registry

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, object]:
    """Report that the service is up and how many users hold a live channel."""

    return {
        "status": "ok",
        "connected_users": notification_registry.connected_user_count(),
    }
