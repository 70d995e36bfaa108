"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationPriority, NotificationType
from app.infrastructure.models import NotificationModel
from app.utils import ensure_naive_utc, ensure_utc, now_utc


class NotificationRepository:
    """Provide CRUD operations for :class:`Notification` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, notification_id: int) -> Notification | None:
        model = self.session.get(NotificationModel, notification_id)
        return self._to_entity(model) if model is not None else None

    def list_for_recipient(
        self,
        recipient_id: str,
        *,
        is_read: bool | None = None,
        limit: int | None = 50,
    ) -> Sequence[Notification]:
        query = self.session.query(NotificationModel).filter(
            NotificationModel.recipient_id == recipient_id
        )
        if is_read is not None:
            query = query.filter(NotificationModel.is_read.is_(is_read))
        query = query.order_by(
            NotificationModel.created_at.desc(), NotificationModel.id.desc()
        )
        if limit is not None:
            query = query.limit(limit)
        return [self._to_entity(model) for model in query.all()]

    def count_unread(self, recipient_id: str) -> int:
        count = (
            self.session.query(func.count(NotificationModel.id))
            .filter(NotificationModel.recipient_id == recipient_id)
            .filter(NotificationModel.is_read.is_(False))
            .scalar()
        )
        return int(count or 0)

    def create(self, notification: Notification) -> Notification:
        if notification.id is not None:
            raise ValueError("New notifications must not carry an id")
        model = NotificationModel(
            recipient_id=notification.recipient_id,
            type=NotificationType(notification.type).value,
            title=notification.title,
            message=notification.message,
            priority=NotificationPriority(notification.priority).value,
            is_read=notification.is_read,
            related_entity=notification.related_entity,
            extra=dict(notification.metadata or {}),
            created_at=ensure_naive_utc(notification.created_at or now_utc()),
            read_at=ensure_naive_utc(notification.read_at),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_read(self, notification_id: int, *, recipient_id: str) -> bool:
        """Mark one notification as read.

        Returns ``False`` when the notification does not exist or belongs to a
        different recipient. Marking an already read notification keeps its
        original ``read_at``.
        """

        model = self.session.get(NotificationModel, notification_id)
        if model is None or model.recipient_id != recipient_id:
            return False
        entity = self._to_entity(model)
        if entity.mark_read(now_utc()):
            model.is_read = True
            model.read_at = ensure_naive_utc(entity.read_at)
            self.session.commit()
        return True

    def mark_all_read(self, recipient_id: str) -> int:
        updated = (
            self.session.query(NotificationModel)
            .filter(NotificationModel.recipient_id == recipient_id)
            .filter(NotificationModel.is_read.is_(False))
            .update(
                {
                    NotificationModel.is_read: True,
                    NotificationModel.read_at: ensure_naive_utc(now_utc()),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return int(updated or 0)

    def delete(self, notification_id: int, *, recipient_id: str) -> bool:
        model = self.session.get(NotificationModel, notification_id)
        if model is None or model.recipient_id != recipient_id:
            return False
        self.session.delete(model)
        self.session.commit()
        return True

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            recipient_id=model.recipient_id,
            type=NotificationType(model.type),
            title=model.title,
            message=model.message,
            priority=NotificationPriority(model.priority),
            is_read=bool(model.is_read),
            created_at=ensure_utc(model.created_at),
            read_at=ensure_utc(model.read_at),
            related_entity=model.related_entity,
            metadata=dict(model.extra or {}),
        )


__all__ = ["NotificationRepository"]
