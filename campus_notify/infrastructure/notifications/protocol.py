"""Message contract spoken over the notification push channel.

Every frame is a JSON object with a ``type`` key.

Client to server::

    {"type": "get_notifications", "limit": 20, "offset": 0, "request_id": 7}
    {"type": "mark_read", "notification_id": 42}
    {"type": "ping"}

Server to client::

    {"type": "notification", "notification": {...}}
    {"type": "notifications", "notifications": [...], "request_id": 7}
    {"type": "unread_count", "count": 3}
    {"type": "error", "message": "..."}
    {"type": "pong"}

Malformed frames never close the channel; they are answered with an
``error`` frame instead.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from campus_notify.domain.entities import Notification, NotificationType
from campus_notify.utils import isoformat_or_none

MAX_PAGE_SIZE = 100
# Largest value a signed 64-bit INTEGER column can hold.
MAX_STORED_INTEGER = 2**63 - 1
DEFAULT_PAGE_SIZE = 20

GET_NOTIFICATIONS = "get_notifications"
MARK_READ = "mark_read"
PING = "ping"

NOTIFICATION = "notification"
NOTIFICATIONS = "notifications"
ERROR = "error"
PONG = "pong"
UNREAD_COUNT = "unread_count"

CLIENT_MESSAGE_TYPES = frozenset({GET_NOTIFICATIONS, MARK_READ, PING})
_TAGS = CLIENT_MESSAGE_TYPES | {"type"}

RequestId = Union[int, str, None]


class ProtocolError(ValueError):
    """Raised when an inbound frame does not follow the message contract."""


class GetNotificationsMessage(BaseModel):
    """Request for a page of the caller's notifications, newest first."""

    type: Literal["get_notifications"]
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0, le=MAX_STORED_INTEGER)
    request_id: RequestId = None


class MarkReadMessage(BaseModel):
    """Request to flip one notification to read."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["mark_read"]
    notification_id: int = Field(alias="notificationId", le=MAX_STORED_INTEGER)


class PingMessage(BaseModel):
    type: Literal["ping"]


ClientMessage = Annotated[
    Union[GetNotificationsMessage, MarkReadMessage, PingMessage],
    Field(discriminator="type"),
]

_client_message_adapter: TypeAdapter[ClientMessage] = TypeAdapter(ClientMessage)


class NotificationPayload(BaseModel):
    """Wire representation of a :class:`Notification`."""

    id: int
    user_id: int
    type: str = NotificationType.GENERIC.value
    title: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    created_at: datetime | None = None
    read_at: datetime | None = None

    def to_entity(self) -> Notification:
        return Notification(
            id=self.id,
            user_id=self.user_id,
            type=NotificationType.parse(self.type),
            title=self.title,
            message=self.message,
            data=dict(self.data),
            read=self.read or self.read_at is not None,
            created_at=self.created_at,
            read_at=self.read_at,
        )


def parse_client_message(raw: str | bytes | dict[str, Any]) -> ClientMessage:
    """Validate an inbound frame and return the typed message.

    Raises :class:`ProtocolError` with a user facing description when the
    frame is not valid JSON, is not an object, has an unknown ``type`` or
    carries invalid fields.
    """

    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ProtocolError("Mensaje JSON inválido") from exc

    if not isinstance(raw, dict):
        raise ProtocolError("El mensaje debe ser un objeto JSON")

    message_type = raw.get("type")
    if message_type not in CLIENT_MESSAGE_TYPES:
        raise ProtocolError(f"Tipo de mensaje desconocido: {message_type!r}")

    try:
        return _client_message_adapter.validate_python(raw)
    except ValidationError as exc:
        raise ProtocolError(_describe_validation_error(exc)) from exc


def _describe_validation_error(exc: ValidationError) -> str:
    details = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in _TAGS)
        details.append(f"{location or 'mensaje'}: {error.get('msg')}")
    return "Mensaje inválido (" + "; ".join(details) + ")"


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the JSON-serializable representation of ``notification``."""

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": NotificationType.parse(notification.type).value,
        "title": notification.title,
        "message": notification.message,
        "data": dict(notification.data or {}),
        "read": notification.read,
        "created_at": isoformat_or_none(notification.created_at),
        "read_at": isoformat_or_none(notification.read_at),
    }


def parse_notification(payload: dict[str, Any]) -> Notification:
    """Build a :class:`Notification` from its wire representation."""

    try:
        return NotificationPayload.model_validate(payload).to_entity()
    except ValidationError as exc:
        raise ProtocolError(_describe_validation_error(exc)) from exc


def notification_message(notification: Notification) -> dict[str, Any]:
    return {"type": NOTIFICATION, "notification": serialize_notification(notification)}


def notifications_message(
    notifications: Iterable[Notification], *, request_id: RequestId = None
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "type": NOTIFICATIONS,
        "notifications": [serialize_notification(item) for item in notifications],
    }
    if request_id is not None:
        message["request_id"] = request_id
    return message


def error_message(detail: str) -> dict[str, Any]:
    return {"type": ERROR, "message": detail}


def pong_message() -> dict[str, Any]:
    return {"type": PONG}


def unread_count_message(count: int) -> dict[str, Any]:
    """Authoritative unread total for the recipient, sent after changes."""

    return {"type": UNREAD_COUNT, "count": count}


def parse_unread_count(message: dict[str, Any]) -> int:
    count = message.get("count")
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ProtocolError(f"Conteo de no leídas inválido: {count!r}")
    return count


def get_notifications_request(
    *, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0, request_id: RequestId = None
) -> dict[str, Any]:
    message: dict[str, Any] = {"type": GET_NOTIFICATIONS, "limit": limit, "offset": offset}
    if request_id is not None:
        message["request_id"] = request_id
    return message


def mark_read_request(notification_id: int) -> dict[str, Any]:
    return {"type": MARK_READ, "notification_id": notification_id}


def ping_request() -> dict[str, Any]:
    return {"type": PING}


__all__ = [
    "ClientMessage",
    "GetNotificationsMessage",
    "MarkReadMessage",
    "NotificationPayload",
    "PingMessage",
    "ProtocolError",
    "MAX_STORED_INTEGER",
    "error_message",
    "get_notifications_request",
    "mark_read_request",
    "notification_message",
    "notifications_message",
    "parse_client_message",
    "parse_notification",
    "ping_request",
    "parse_unread_count",
    "pong_message",
    "serialize_notification",
    "unread_count_message",
]
