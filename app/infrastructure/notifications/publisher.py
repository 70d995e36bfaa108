"""Utility helpers to persist notifications and push them to live sessions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from anyio import from_thread
from sqlalchemy.orm import Session

from app.domain.entities import Notification
from app.infrastructure.repositories import NotificationRepository
from app.schemas.frames import (
    CountUpdateFrame,
    NewNotificationFrame,
    NotificationReadFrame,
)
from app.utils import isoformat_or_none

from .hub import NotificationHub, notification_hub

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Store notifications and schedule their realtime delivery."""

    def __init__(self, hub: NotificationHub) -> None:
        self._hub = hub
        self._pending: set[asyncio.Task] = set()

    def publish(self, session: Session, notification: Notification) -> Notification:
        """Persist ``notification`` and push it with the fresh unread count."""

        repository = NotificationRepository(session)
        saved = repository.create(notification)
        unread = repository.count_unread(saved.recipient_id)
        frame = NewNotificationFrame(notification=serialize_notification(saved), count=unread)
        self._schedule(self._hub.deliver(saved.recipient_id, frame))
        return saved

    def dispatch_read(
        self,
        recipient_id: str,
        unread_count: int,
        *,
        notification_id: int | None = None,
    ) -> None:
        """Tell the recipient's sessions that read state changed elsewhere."""

        self._schedule(
            self._deliver_all(
                recipient_id,
                NotificationReadFrame(notification_id=notification_id),
                CountUpdateFrame(count=unread_count),
            )
        )

    def dispatch_count(self, recipient_id: str, unread_count: int) -> None:
        self._schedule(self._hub.broadcast_count_update(recipient_id, unread_count))

    async def _deliver_all(self, recipient_id: str, *frames: Any) -> None:
        for frame in frames:
            await self._hub.deliver(recipient_id, frame)

    def _schedule(self, coroutine: Coroutine[Any, Any, Any]) -> None:
        """Start ``coroutine`` on the event loop without waiting for it.

        From a worker thread the task is created on the loop thread and the
        caller returns before any frame is sent.
        """

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run_sync(self._start, coroutine)
            except RuntimeError:
                coroutine.close()
                logger.warning("No event loop available; realtime delivery skipped")
        else:
            self._start(coroutine)

    def _start(self, coroutine: Coroutine[Any, Any, Any]) -> None:
        task = asyncio.get_running_loop().create_task(coroutine)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "recipientId": notification.recipient_id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "priority": notification.priority.value,
        "isRead": notification.is_read,
        "createdAt": isoformat_or_none(notification.created_at),
        "readAt": isoformat_or_none(notification.read_at),
        "relatedEntity": notification.related_entity,
        "metadata": notification.metadata or {},
    }


notification_publisher = NotificationPublisher(notification_hub)


def publish_notification(session: Session, notification: Notification) -> Notification:
    """Public helper that delegates to the shared publisher instance."""

    return notification_publisher.publish(session, notification)


__all__ = [
    "NotificationPublisher",
    "notification_publisher",
    "publish_notification",
    "serialize_notification",
]
