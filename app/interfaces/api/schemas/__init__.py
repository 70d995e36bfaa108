"""Pydantic schemas exposed by the REST interface."""

from .notification import MessageResponse, NotificationRead, UnreadCount

__all__ = ["MessageResponse", "NotificationRead", "UnreadCount"]
