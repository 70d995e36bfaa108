"""Domain entities exposed by the application."""

from .identity import ROLE_ADMIN, ROLE_ASSESSOR, ROLE_CLIENT, Identity
from .notification import Notification, NotificationPriority, NotificationType

__all__ = [
    "Identity",
    "ROLE_ADMIN",
    "ROLE_ASSESSOR",
    "ROLE_CLIENT",
    "Notification",
    "NotificationPriority",
    "NotificationType",
]
