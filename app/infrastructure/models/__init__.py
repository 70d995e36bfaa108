"""ORM models for the notification store."""

from .notification import NotificationModel

__all__ = ["NotificationModel"]
