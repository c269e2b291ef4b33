"""Realtime notification helpers for the infrastructure layer."""

from .connection import PushConnection
from .registry import NotificationConnectionRegistry, notification_registry
from .publisher import (
    NotificationPublisher,
    dispatch_notification,
    notification_publisher,
)
from .protocol import ProtocolError, parse_client_message, serialize_notification

__all__ = [
    "PushConnection",
    "NotificationConnectionRegistry",
    "notification_registry",
    "NotificationPublisher",
    "notification_publisher",
    "dispatch_notification",
    "ProtocolError",
    "parse_client_message",
    "serialize_notification",
]
