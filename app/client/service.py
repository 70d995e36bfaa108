"""Wire the connection manager and the reconciliation layer together."""

from __future__ import annotations

import logging
from typing import Any

from app.config import ClientSettings
from app.domain.entities import Identity

from .api import NotificationStoreClient, StoreAccessError
from .connection import ClientConnectionManager, ConnectionStatus
from .reconciliation import NotificationReconciler

logger = logging.getLogger(__name__)


class NotificationClient:
    """Realtime notifications for one signed-in user."""

    def __init__(
        self,
        connection: ClientConnectionManager,
        reconciler: NotificationReconciler,
        *,
        store: NotificationStoreClient | None = None,
    ) -> None:
        self.connection = connection
        self.reconciler = reconciler
        self._store = store
        connection.on_frame = reconciler.handle_frame
        connection.on_authenticated = self._on_authenticated
        connection.on_degraded = self._on_degraded

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, identity: Identity, **connection_options: Any
    ) -> "NotificationClient":
        store = NotificationStoreClient.from_settings(settings)
        reconciler = NotificationReconciler(
            store,
            resync_interval=settings.resync_interval_seconds,
        )
        connection = ClientConnectionManager.from_settings(
            settings, identity, **connection_options
        )
        return cls(connection, reconciler, store=store)

    @property
    def live_updates_available(self) -> bool:
        return self.reconciler.live_updates_available

    @property
    def status(self) -> ConnectionStatus:
        return self.connection.status

    async def start(self) -> None:
        """Open the channel, prime the cache and start periodic resync."""

        self.reconciler.start()
        self.connection.connect()
        try:
            await self.reconciler.unread_count()
        except StoreAccessError as exc:
            logger.warning("Initial unread count unavailable: %s", exc)

    async def stop(self) -> None:
        await self.connection.disconnect()
        await self.reconciler.stop()
        if self._store is not None:
            await self._store.aclose()

    def _on_authenticated(self) -> None:
        self.reconciler.set_live_updates(True)

    def _on_degraded(self) -> None:
        self.reconciler.set_live_updates(False)


__all__ = ["NotificationClient"]
