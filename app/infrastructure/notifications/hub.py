"""Registry of live notification sessions grouped by recipient."""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Protocol

from app.schemas.frames import CountUpdateFrame, encode_frame
from app.utils import now_utc

logger = logging.getLogger(__name__)

INTERNAL_ERROR = 1011
GOING_AWAY = 1001


class DeliveryTarget(Protocol):
    """What the hub needs from a connection session."""

    last_activity_at: datetime

    async def send_text(self, text: str) -> None: ...

    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class NotificationHub:
    """Track authenticated sessions by recipient and push frames to them.

    The registry lock only guards the maps. Sends always happen on a snapshot
    taken under the lock, so a slow peer never blocks registration.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, set[DeliveryTarget]] = {}
        self._recipients: dict[DeliveryTarget, str] = {}
        self._roles: dict[DeliveryTarget, str] = {}

    def register(self, session: DeliveryTarget, recipient_id: str, role: str) -> None:
        """Add ``session`` to the live set of ``recipient_id``."""

        with self._lock:
            self._discard_locked(session)
            self._sessions.setdefault(recipient_id, set()).add(session)
            self._recipients[session] = recipient_id
            self._roles[session] = role
            total = len(self._recipients)
        logger.info(
            "Session registered for recipient %s (%s); %d live sessions",
            recipient_id,
            role,
            total,
        )

    def unregister(self, session: DeliveryTarget) -> bool:
        """Remove ``session`` from the registry; returns ``False`` if absent."""

        with self._lock:
            recipient_id = self._discard_locked(session)
            total = len(self._recipients)
        if recipient_id is None:
            return False
        logger.info(
            "Session unregistered for recipient %s; %d live sessions",
            recipient_id,
            total,
        )
        return True

    def _discard_locked(self, session: DeliveryTarget) -> str | None:
        recipient_id = self._recipients.pop(session, None)
        self._roles.pop(session, None)
        if recipient_id is None:
            return None
        sessions = self._sessions.get(recipient_id)
        if sessions is not None:
            sessions.discard(session)
            if not sessions:
                del self._sessions[recipient_id]
        return recipient_id

    def sessions_for(self, recipient_id: str) -> list[DeliveryTarget]:
        with self._lock:
            return list(self._sessions.get(recipient_id, ()))

    def recipient_of(self, session: DeliveryTarget) -> str | None:
        with self._lock:
            return self._recipients.get(session)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._recipients)

    def recipient_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "connections": len(self._recipients),
                "recipients": len(self._sessions),
            }

    async def deliver(
        self, recipient_id: str, payload: Any | Mapping[str, Any]
    ) -> int:
        """Send ``payload`` to every live session of ``recipient_id``.

        Returns how many sessions accepted the frame. Sessions whose send
        fails are unregistered and closed; the others still receive it.
        """

        sessions = self.sessions_for(recipient_id)
        if not sessions:
            logger.debug("No live sessions for recipient %s", recipient_id)
            return 0
        text = encode_frame(payload)
        results = await asyncio.gather(*(self._send(session, text) for session in sessions))
        delivered = sum(results)
        logger.debug(
            "Delivered frame to %d/%d sessions of recipient %s",
            delivered,
            len(sessions),
            recipient_id,
        )
        return delivered

    async def broadcast_count_update(self, recipient_id: str, unread_count: int) -> int:
        """Push a count-only frame so badges update without a refetch."""

        return await self.deliver(recipient_id, CountUpdateFrame(count=unread_count))

    async def broadcast_to_role(self, role: str, payload: Any | Mapping[str, Any]) -> int:
        """Send ``payload`` to every live session whose role matches ``role``."""

        with self._lock:
            sessions = [
                session
                for session, session_role in self._roles.items()
                if session_role == role
            ]
        if not sessions:
            return 0
        text = encode_frame(payload)
        results = await asyncio.gather(*(self._send(session, text) for session in sessions))
        return sum(results)

    async def _send(self, session: DeliveryTarget, text: str) -> bool:
        try:
            await session.send_text(text)
        except Exception as exc:
            logger.info("Send failed (%r); dropping session", exc)
            self.unregister(session)
            await _close_quietly(session, INTERNAL_ERROR, "Delivery failed")
            return False
        return True

    def evict_idle(
        self, max_idle: timedelta, *, now: datetime | None = None
    ) -> list[DeliveryTarget]:
        """Unregister sessions that have been silent for longer than ``max_idle``."""

        cutoff = (now or now_utc()) - max_idle
        with self._lock:
            stale = [
                session
                for session in self._recipients
                if session.last_activity_at < cutoff
            ]
            for session in stale:
                self._discard_locked(session)
        for session in stale:
            logger.info("Evicting idle session (last activity %s)", session.last_activity_at)
        return stale

    async def run_idle_sweeper(self, interval: float, max_idle: timedelta) -> None:
        """Periodically evict and close idle sessions until cancelled."""

        while True:
            await asyncio.sleep(interval)
            for session in self.evict_idle(max_idle):
                await _close_quietly(session, GOING_AWAY, "Idle timeout")


async def _close_quietly(session: DeliveryTarget, code: int, reason: str) -> None:
    try:
        await session.close(code=code, reason=reason)
    except Exception as exc:
        logger.debug("Ignoring close failure on dead session: %s", exc)


notification_hub = NotificationHub()


__all__ = ["DeliveryTarget", "NotificationHub", "notification_hub"]
