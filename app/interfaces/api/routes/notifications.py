"""Endpoints and websocket handler for realtime notifications."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.entities import Identity, Notification
from app.infrastructure.database import get_db
from app.infrastructure.notifications import (
    ConnectionSession,
    notification_hub,
    notification_publisher,
)
from app.infrastructure.repositories import NotificationRepository
from app.interfaces.api.dependencies import (
    get_current_identity,
    resolve_identity,
    websocket_token,
)
from app.interfaces.api.schemas import MessageResponse, NotificationRead, UnreadCount

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)

POLICY_VIOLATION = 1008


def _notification_to_schema(notification: Notification) -> NotificationRead:
    return NotificationRead(
        id=notification.id or 0,
        recipient_id=notification.recipient_id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        priority=notification.priority,
        is_read=notification.is_read,
        created_at=notification.created_at,
        read_at=notification.read_at,
        related_entity=notification.related_entity,
        metadata=notification.metadata or {},
    )


def _store_unavailable(db: Session, exc: SQLAlchemyError, action: str) -> HTTPException:
    db.rollback()
    logger.exception("Notification store failed while trying to %s: %s", action, exc)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Failed to {action}",
    )


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    is_read: bool | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> list[NotificationRead]:
    """Return the most recent notifications for the authenticated recipient."""

    try:
        notifications = NotificationRepository(db).list_for_recipient(
            identity.recipient_id, is_read=is_read, limit=limit
        )
    except SQLAlchemyError as exc:
        raise _store_unavailable(db, exc, "fetch notifications") from exc
    return [_notification_to_schema(notification) for notification in notifications]


@router.get("/count", response_model=UnreadCount)
def count_unread(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> UnreadCount:
    """Return how many notifications the recipient has not read yet."""

    try:
        count = NotificationRepository(db).count_unread(identity.recipient_id)
    except SQLAlchemyError as exc:
        raise _store_unavailable(db, exc, "fetch notification count") from exc
    return UnreadCount(count=count)


@router.patch("/read-all", response_model=MessageResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    repository = NotificationRepository(db)
    try:
        updated = repository.mark_all_read(identity.recipient_id)
        unread = repository.count_unread(identity.recipient_id)
    except SQLAlchemyError as exc:
        raise _store_unavailable(db, exc, "mark all notifications as read") from exc
    notification_publisher.dispatch_read(identity.recipient_id, unread)
    return MessageResponse(message="All notifications marked as read", updated=updated)


@router.patch("/{notification_id}/read", response_model=MessageResponse)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    repository = NotificationRepository(db)
    try:
        found = repository.mark_read(notification_id, recipient_id=identity.recipient_id)
        unread = repository.count_unread(identity.recipient_id)
    except SQLAlchemyError as exc:
        raise _store_unavailable(db, exc, "mark notification as read") from exc
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    notification_publisher.dispatch_read(
        identity.recipient_id, unread, notification_id=notification_id
    )
    return MessageResponse(message="Notification marked as read")


@router.delete("/{notification_id}", response_model=MessageResponse)
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> MessageResponse:
    repository = NotificationRepository(db)
    try:
        found = repository.delete(notification_id, recipient_id=identity.recipient_id)
        unread = repository.count_unread(identity.recipient_id)
    except SQLAlchemyError as exc:
        raise _store_unavailable(db, exc, "delete notification") from exc
    if not found:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    notification_publisher.dispatch_count(identity.recipient_id, unread)
    return MessageResponse(message="Notification deleted")


async def notifications_websocket(websocket: WebSocket) -> None:
    """Websocket endpoint that streams notifications to the authenticated recipient."""

    token = websocket_token(websocket)
    if not token:
        await websocket.close(code=POLICY_VIOLATION, reason="Authentication required")
        return
    try:
        identity = resolve_identity(token)
    except HTTPException:
        await websocket.close(code=POLICY_VIOLATION, reason="Authentication failed")
        return

    settings = get_settings()
    session = ConnectionSession(
        websocket,
        identity,
        notification_hub,
        send_timeout=settings.send_timeout_seconds,
        auth_timeout=settings.auth_timeout_seconds,
    )
    await session.run()
