"""Asyncio client for the realtime notification channel."""

from .api import NotificationStoreClient, StoreAccessError
from .connection import ClientConnectionManager, ConnectionStatus, reconnect_delay
from .reconciliation import NotificationCache, NotificationReconciler
from .scheduling import LoopScheduler, ScheduledTask
from .service import NotificationClient
from .transport import (
    TransportClosed,
    TransportError,
    WebsocketTransport,
    build_websocket_url,
    open_websocket,
)

__all__ = [
    "ClientConnectionManager",
    "ConnectionStatus",
    "LoopScheduler",
    "NotificationCache",
    "NotificationClient",
    "NotificationReconciler",
    "NotificationStoreClient",
    "ScheduledTask",
    "StoreAccessError",
    "TransportClosed",
    "TransportError",
    "WebsocketTransport",
    "build_websocket_url",
    "open_websocket",
    "reconnect_delay",
]
