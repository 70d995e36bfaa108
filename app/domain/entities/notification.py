"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Kinds of notification the service knows how to deliver."""

    ASSESSMENT_STARTED = "assessment_started"
    ASSESSMENT_SUBMITTED = "assessment_submitted"
    ASSESSMENT_COMPLETED = "assessment_completed"
    EDIT_REQUEST_CREATED = "edit_request_created"
    EDIT_REQUEST_APPROVED = "edit_request_approved"
    EDIT_REQUEST_DENIED = "edit_request_denied"
    REPORT_READY = "report_ready"
    ASSESSMENT_LOCKED = "assessment_locked"
    ASSESSMENT_UNLOCKED = "assessment_unlocked"
    EDITING_COMPLETED = "editing_completed"
    SYSTEM = "system"


class NotificationPriority(str, Enum):
    """Urgency hint used by clients when rendering a notification."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Notification:
    """Information message delivered to a specific recipient.

    ``related_entity`` and ``metadata`` are opaque to the delivery layer; they
    travel untouched so clients can build navigation links and richer text.
    """

    id: int | None
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.MEDIUM
    is_read: bool = False
    created_at: datetime | None = None
    read_at: datetime | None = None
    related_entity: dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.is_read and self.read_at is None:
            raise ValueError("A read notification must carry its read timestamp")

    def mark_read(self, when: datetime) -> bool:
        """Flag the notification as read.

        Returns ``True`` only on the unread to read transition; ``read_at`` is
        never overwritten afterwards.
        """

        if self.is_read:
            return False
        self.is_read = True
        self.read_at = when
        return True


__all__ = ["Notification", "NotificationPriority", "NotificationType"]
