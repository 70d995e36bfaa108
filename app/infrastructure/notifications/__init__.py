"""Realtime notification helpers for the infrastructure layer."""

from .hub import NotificationHub, notification_hub
from .publisher import (
    NotificationPublisher,
    notification_publisher,
    publish_notification,
    serialize_notification,
)
from .session import ConnectionSession, SessionClosedError, SessionState

__all__ = [
    "NotificationHub",
    "notification_hub",
    "NotificationPublisher",
    "notification_publisher",
    "publish_notification",
    "serialize_notification",
    "ConnectionSession",
    "SessionClosedError",
    "SessionState",
]
