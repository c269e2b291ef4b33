"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

import logging
from functools import partial
from typing import Sequence

from anyio import to_thread
from fastapi import (
    APIRouter,
    Depends,
    HTTPException,
    Path,
    Query,
    Response,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from campus_notify.config import get_settings
from campus_notify.domain.entities import Notification, User
from campus_notify.infrastructure.database import SessionLocal, get_db
from campus_notify.infrastructure.notifications import PushConnection, notification_registry
from campus_notify.infrastructure.notifications.protocol import (
    MAX_STORED_INTEGER,
    GetNotificationsMessage,
    MarkReadMessage,
    PingMessage,
    ProtocolError,
    error_message,
    notifications_message,
    parse_client_message,
    pong_message,
    unread_count_message,
)
from campus_notify.infrastructure.repositories import (
    NotificationNotFoundError,
    NotificationRepository,
)
from campus_notify.interfaces.api.dependencies import (
    get_current_active_user,
    resolve_current_user,
)
from campus_notify.interfaces.api.schemas import (
    NotificationMarkAllReadResult,
    NotificationMarkReadResult,
    NotificationPage,
    NotificationRead,
    UnreadCount,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])

logger = logging.getLogger(__name__)

_NOT_FOUND_DETAIL = "Notificación no encontrada"
_PROCESSING_FAILED_DETAIL = "No se pudo procesar la solicitud"


@router.get("/", response_model=NotificationPage)
def list_notifications(
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0, le=MAX_STORED_INTEGER),
    unread_only: bool = False,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationPage:
    """Return a page of the authenticated user's notifications, newest first."""

    settings = get_settings()
    page_size = min(limit or settings.notification_page_size, settings.notification_max_page_size)
    repository = NotificationRepository(db)
    notifications = repository.list_for_user(
        current_user.id, limit=page_size, offset=offset, unread_only=unread_only
    )
    return NotificationPage(
        notifications=[NotificationRead.from_entity(item) for item in notifications],
        unread_count=repository.count_unread(current_user.id),
        total=repository.count_for_user(current_user.id, unread_only=unread_only),
        limit=page_size,
        offset=offset,
    )


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnreadCount:
    return UnreadCount(unread_count=NotificationRepository(db).count_unread(current_user.id))


@router.put("/read-all", response_model=NotificationMarkAllReadResult)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationMarkAllReadResult:
    """Mark every notification of the authenticated user as read."""

    updated = NotificationRepository(db).mark_all_as_read(current_user.id)
    return NotificationMarkAllReadResult(updated=updated)


@router.put("/{notification_id}/read", response_model=NotificationMarkReadResult)
def mark_notification_read(
    notification_id: int = Path(..., le=MAX_STORED_INTEGER),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationMarkReadResult:
    """Mark a single notification as read. Repeating the call is harmless."""

    try:
        changed = NotificationRepository(db).mark_as_read(
            notification_id, user_id=current_user.id
        )
    except NotificationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND_DETAIL) from exc
    return NotificationMarkReadResult(id=notification_id, changed=changed)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(
    notification_id: int = Path(..., le=MAX_STORED_INTEGER),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Response:
    try:
        NotificationRepository(db).delete(notification_id, user_id=current_user.id)
    except NotificationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_NOT_FOUND_DETAIL) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.websocket("/ws")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated user."""

    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        user = await to_thread.run_sync(_authenticate_socket_user, token)
    except HTTPException as exc:
        logger.info("Rejected notification socket handshake: %s", exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    except Exception:
        logger.exception("Unexpected error while authenticating a notification socket")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    connection = PushConnection(user.id, websocket)
    await connection.open()
    notification_registry.register(user.id, connection)
    logger.info("Notification socket opened for user %s", user.id)

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            raw = frame.get("text")
            if raw is None:
                raw = frame.get("bytes") or b""
            await _handle_client_frame(connection, raw)
    except WebSocketDisconnect as exc:
        logger.info("Notification socket closed for user %s (code %s)", user.id, exc.code)
    finally:
        notification_registry.unregister(user.id, connection)
        await connection.close()


async def _handle_client_frame(connection: PushConnection, raw: str | bytes) -> None:
    """Process one inbound frame; failures are answered, never raised."""

    user_id = connection.user_id
    try:
        message = parse_client_message(raw)
    except ProtocolError as exc:
        logger.warning("Protocol error on notification socket for user %s: %s", user_id, exc)
        await connection.send(error_message(str(exc)))
        return

    if isinstance(message, PingMessage):
        await connection.send(pong_message())
        return

    try:
        if isinstance(message, GetNotificationsMessage):
            limit = min(message.limit, get_settings().notification_max_page_size)
            notifications, unread = await to_thread.run_sync(
                partial(_load_page, user_id, limit=limit, offset=message.offset)
            )
            await connection.send(
                notifications_message(notifications, request_id=message.request_id)
            )
            await connection.send(unread_count_message(unread))
        elif isinstance(message, MarkReadMessage):
            unread = await to_thread.run_sync(
                partial(_mark_read, user_id, message.notification_id)
            )
            if unread is not None:
                await connection.send(unread_count_message(unread))
    except NotificationNotFoundError:
        await connection.send(error_message(_NOT_FOUND_DETAIL))
    except SQLAlchemyError:
        logger.exception("Store failure while handling %s for user %s", message.type, user_id)
        await connection.send(error_message(_PROCESSING_FAILED_DETAIL))
    except Exception:
        logger.exception("Unexpected failure while handling %s for user %s", message.type, user_id)
        await connection.send(error_message(_PROCESSING_FAILED_DETAIL))


def _authenticate_socket_user(token: str) -> User:
    session = SessionLocal()
    try:
        user = resolve_current_user(token, session)
    finally:
        session.close()
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Usuario inactivo")
    return user


def _load_page(
    user_id: int, *, limit: int, offset: int
) -> tuple[Sequence[Notification], int]:
    session = SessionLocal()
    try:
        repository = NotificationRepository(session)
        notifications = repository.list_for_user(user_id, limit=limit, offset=offset)
        return notifications, repository.count_unread(user_id)
    finally:
        session.close()


def _mark_read(user_id: int, notification_id: int) -> int | None:
    """Mark as read; return the new unread total, or ``None`` if nothing changed."""

    session = SessionLocal()
    try:
        repository = NotificationRepository(session)
        if not repository.mark_as_read(notification_id, user_id=user_id):
            return None
        return repository.count_unread(user_id)
    finally:
        session.close()
