"""Client cache of unread count and notification list.

Two sources feed the cache: deltas pushed over the realtime channel and a
periodic resynchronisation against the store. Push frames may be lost; the
periodic resync bounds the resulting drift to one interval.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.schemas.frames import (
    AuthSuccessFrame,
    CountUpdateFrame,
    NewNotificationFrame,
    NotificationReadFrame,
)
from app.utils import now_utc

from .api import NotificationStoreClient, StoreAccessError

logger = logging.getLogger(__name__)

RESYNC_INTERVAL = 30.0


@dataclass
class NotificationCache:
    unread_count: int | None = None
    count_stale: bool = True
    notifications: list[dict[str, Any]] | None = None
    list_stale: bool = True
    last_synced_at: datetime | None = None
    # Bumped on every change; a store read started under an older generation
    # is discarded.
    generation: int = 0

    def invalidate(self) -> None:
        self.count_stale = True
        self.list_stale = True
        self.generation += 1


class NotificationReconciler:
    """Keep :class:`NotificationCache` converging on the store's state.

    User actions go through the store and then invalidate the cache instead
    of editing it in place, so a push frame racing with the action can never
    leave a stale optimistic value behind.
    """

    def __init__(
        self,
        store: NotificationStoreClient,
        *,
        resync_interval: float = RESYNC_INTERVAL,
        on_change: Callable[[NotificationCache], Any] | None = None,
    ) -> None:
        self._store = store
        self.resync_interval = resync_interval
        self.on_change = on_change
        self.cache = NotificationCache()
        self.live_updates_available = True
        self._resync_loop_task: asyncio.Task | None = None
        self._pending_resync: asyncio.Task | None = None

    async def handle_frame(self, frame: Any) -> None:
        """Apply a frame received over the realtime channel."""

        cache = self.cache
        if isinstance(frame, NewNotificationFrame):
            if frame.count is not None:
                cache.unread_count = frame.count
                cache.count_stale = False
            else:
                cache.count_stale = True
                self._request_resync()
            cache.list_stale = True
        elif isinstance(frame, NotificationReadFrame):
            # Another session or device changed read state.
            cache.list_stale = True
            cache.count_stale = True
        elif isinstance(frame, CountUpdateFrame):
            cache.unread_count = frame.count
            cache.count_stale = False
        elif isinstance(frame, AuthSuccessFrame):
            # Frames sent before the server registered us were not delivered.
            self._request_resync()
            return
        else:
            return
        cache.generation += 1
        await self._changed()

    async def resync(self) -> int:
        """Fetch the authoritative unread count from the store.

        The fetched count is only applied when nothing changed the cache while
        the request was in flight; otherwise it is returned but discarded.
        """

        cache = self.cache
        generation = cache.generation
        count = await self._store.count_unread()
        if cache.generation != generation:
            logger.debug("Discarding unread count %s fetched before a cache change", count)
            return count
        if cache.unread_count is not None and cache.unread_count != count:
            logger.info("Unread count drifted from %s to %s; refreshing", cache.unread_count, count)
            cache.list_stale = True
            cache.generation += 1
        cache.unread_count = count
        cache.count_stale = False
        cache.last_synced_at = now_utc()
        await self._changed()
        return count

    async def unread_count(self) -> int:
        """Return the unread count, refetching it when the cache is stale."""

        cache = self.cache
        while cache.unread_count is None or cache.count_stale:
            await self.resync()
        return cache.unread_count

    async def notifications(self) -> list[dict[str, Any]]:
        """Return the notification list, refetching it when stale."""

        cache = self.cache
        while cache.notifications is None or cache.list_stale:
            generation = cache.generation
            notifications = await self._store.list_notifications()
            if cache.generation == generation:
                cache.notifications = notifications
                cache.list_stale = False
        return list(cache.notifications)

    def invalidate(self) -> None:
        self.cache.invalidate()

    async def mark_read(self, notification_id: int) -> None:
        await self._store.mark_read(notification_id)
        self.invalidate()
        await self._changed()

    async def mark_all_read(self) -> None:
        await self._store.mark_all_read()
        self.invalidate()
        await self._changed()

    async def delete(self, notification_id: int) -> None:
        await self._store.delete(notification_id)
        self.invalidate()
        await self._changed()

    def set_live_updates(self, available: bool) -> None:
        if available != self.live_updates_available:
            logger.info("Live updates %s", "available" if available else "unavailable")
        self.live_updates_available = available

    def start(self) -> None:
        """Begin periodic resynchronisation on the running loop."""

        if self._resync_loop_task is None or self._resync_loop_task.done():
            self._resync_loop_task = asyncio.get_running_loop().create_task(
                self._resync_forever()
            )

    async def stop(self) -> None:
        tasks = [
            task
            for task in (self._resync_loop_task, self._pending_resync)
            if task is not None and not task.done()
        ]
        self._resync_loop_task = None
        self._pending_resync = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)

    async def _resync_forever(self) -> None:
        while True:
            await asyncio.sleep(self.resync_interval)
            await self._resync_logged()

    async def _resync_logged(self) -> None:
        try:
            await self.resync()
        except StoreAccessError as exc:
            logger.warning("Periodic resync failed; retrying next interval: %s", exc)

    def _request_resync(self) -> None:
        if self._pending_resync is not None and not self._pending_resync.done():
            return
        self._pending_resync = asyncio.get_running_loop().create_task(self._resync_logged())

    async def _changed(self) -> None:
        if self.on_change is None:
            return
        try:
            result = self.on_change(self.cache)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Cache change listener failed")


__all__ = ["NotificationCache", "NotificationReconciler", "RESYNC_INTERVAL"]
