"""Client side of the notification channel: reconnects, cache and alerts."""

from .alerts import Alert, describe_alert
from .cache import CacheState, NotificationCache
from .reconnect import ReconnectionPolicy
from .service import ClientState, NotificationClient

__all__ = [
    "Alert",
    "CacheState",
    "ClientState",
    "NotificationCache",
    "NotificationClient",
    "ReconnectionPolicy",
    "describe_alert",
]
