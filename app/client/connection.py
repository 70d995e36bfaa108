"""Client side lifecycle of the realtime notification channel.

The manager is a small state machine::

    disconnected -> connecting -> connected -> disconnected
                         \\            \\
                          -> error ----> disconnected

A close that was not requested by the user schedules a reconnect with
exponential backoff until ``max_reconnect_attempts`` is reached.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from app.config import ClientSettings
from app.domain.entities import Identity
from app.schemas.frames import (
    AuthErrorFrame,
    AuthFrame,
    AuthSuccessFrame,
    PingFrame,
    ProtocolError,
    decode_server_frame,
    encode_frame,
)

from .scheduling import LoopScheduler, ScheduledTask, Scheduler
from .transport import (
    ABNORMAL_CLOSURE,
    INTERNAL_ERROR,
    NORMAL_CLOSURE,
    POLICY_VIOLATION,
    Transport,
    TransportClosed,
    TransportError,
    build_websocket_url,
    open_websocket,
)

logger = logging.getLogger(__name__)

MAX_RECONNECT_ATTEMPTS = 5
KEEPALIVE_INTERVAL = 30.0
RECONNECT_BASE_DELAY = 1.0
RECONNECT_MAX_DELAY = 30.0

TransportFactory = Callable[[str], Awaitable[Transport]]
Callback = Callable[..., Any]


class ConnectionStatus(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


def reconnect_delay(
    attempt: int,
    *,
    base: float = RECONNECT_BASE_DELAY,
    maximum: float = RECONNECT_MAX_DELAY,
) -> float:
    """Return the backoff in seconds before reconnect number ``attempt + 1``.

    ``min(1s * 2**attempt, 30s)`` with the default arguments.
    """

    return min(base * (2**attempt), maximum)


class ClientConnectionManager:
    """Own the single transport of one client and keep it alive."""

    def __init__(
        self,
        url: str,
        *,
        identity: Identity | None = None,
        transport_factory: TransportFactory = open_websocket,
        scheduler: Scheduler | None = None,
        on_frame: Callback | None = None,
        on_status_change: Callback | None = None,
        on_authenticated: Callback | None = None,
        on_degraded: Callback | None = None,
        max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS,
        keepalive_interval: float = KEEPALIVE_INTERVAL,
        reconnect_base_delay: float = RECONNECT_BASE_DELAY,
        reconnect_max_delay: float = RECONNECT_MAX_DELAY,
    ) -> None:
        self.url = url
        self._identity = identity
        self._transport_factory = transport_factory
        self._scheduler = scheduler or LoopScheduler()
        self.on_frame = on_frame
        self.on_status_change = on_status_change
        self.on_authenticated = on_authenticated
        self.on_degraded = on_degraded
        self.max_reconnect_attempts = max_reconnect_attempts
        self.keepalive_interval = keepalive_interval
        self._base_delay = reconnect_base_delay
        self._max_delay = reconnect_max_delay

        self._status = ConnectionStatus.DISCONNECTED
        self.reconnect_attempts = 0
        self.authenticated = False
        self.exhausted = False
        self.rejected = False
        self._transport: Transport | None = None
        self._reader: asyncio.Task | None = None
        self._reconnect_timer: ScheduledTask | None = None
        self._keepalive_timer: ScheduledTask | None = None
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, identity: Identity | None = None, **kwargs: Any
    ) -> "ClientConnectionManager":
        url = build_websocket_url(
            settings.base_url, settings.websocket_path, token=settings.token
        )
        return cls(
            url,
            identity=identity,
            max_reconnect_attempts=settings.max_reconnect_attempts,
            keepalive_interval=settings.keepalive_interval_seconds,
            reconnect_base_delay=settings.reconnect_base_delay_seconds,
            reconnect_max_delay=settings.reconnect_max_delay_seconds,
            **kwargs,
        )

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None and not self._reconnect_timer.cancelled

    def connect(self) -> bool:
        """Start a connection attempt.

        Returns ``False`` without side effects when there is no identity or an
        attempt is already in flight. A pending reconnect is replaced by an
        immediate attempt, and an exhausted or rejected manager starts over.
        """

        if self._identity is None:
            logger.debug("No identity; skipping realtime connection")
            return False
        if self._status in (ConnectionStatus.CONNECTING, ConnectionStatus.CONNECTED):
            return False
        if self._reader is not None and not self._reader.done():
            return False
        self._cancel_reconnect()
        if self.exhausted or self.rejected:
            self.reconnect_attempts = 0
            self.exhausted = False
            self.rejected = False
        self._open()
        return True

    async def disconnect(self) -> None:
        """Close the channel on purpose; safe to call in any state."""

        self._cancel_reconnect()
        self._cancel_keepalive()
        reader, self._reader = self._reader, None
        transport, self._transport = self._transport, None
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            reader.cancel()
        if transport is not None:
            try:
                await transport.close(NORMAL_CLOSURE, "User disconnected")
            except TransportError as exc:
                logger.debug("Ignoring close failure: %s", exc)
        if reader is not None and not reader.done() and reader is not asyncio.current_task():
            await asyncio.wait([reader])
        self.authenticated = False
        self.exhausted = False
        self.rejected = False
        self.reconnect_attempts = 0
        self._set_status(ConnectionStatus.DISCONNECTED)

    async def set_identity(self, identity: Identity | None) -> None:
        """Follow a login, logout or account switch."""

        if identity == self._identity:
            return
        await self.disconnect()
        self._identity = identity
        if identity is not None:
            self.connect()

    async def send(self, frame: Any) -> bool:
        """Send ``frame`` if the channel is open; returns whether it was sent."""

        transport = self._transport
        if transport is None or self._status is not ConnectionStatus.CONNECTED:
            logger.warning("Cannot send frame: not connected")
            return False
        try:
            await transport.send(encode_frame(frame))
        except TransportError as exc:
            logger.warning("Sending frame failed: %s", exc)
            return False
        return True

    def _open(self) -> None:
        self._reconnect_timer = None
        if self._identity is None or self._status in (
            ConnectionStatus.CONNECTING,
            ConnectionStatus.CONNECTED,
        ):
            return
        self._set_status(ConnectionStatus.CONNECTING)
        logger.info("Connecting to %s", self.url)
        self._reader = asyncio.get_running_loop().create_task(self._run(self._identity))

    async def _run(self, identity: Identity) -> None:
        try:
            transport = await self._transport_factory(self.url)
        except TransportError as exc:
            logger.warning("Realtime connection failed: %s", exc)
            self._set_status(ConnectionStatus.ERROR)
            self._handle_close(ABNORMAL_CLOSURE)
            return
        except Exception:
            logger.exception("Unexpected failure opening realtime connection")
            self._set_status(ConnectionStatus.ERROR)
            self._handle_close(ABNORMAL_CLOSURE)
            return

        self._transport = transport
        self._set_status(ConnectionStatus.CONNECTED)
        code = ABNORMAL_CLOSURE
        try:
            await transport.send(
                encode_frame(AuthFrame(recipient_id=identity.recipient_id, role=identity.role))
            )
            self._schedule_keepalive()
            while True:
                text = await transport.receive()
                try:
                    frame = decode_server_frame(text)
                except ProtocolError as exc:
                    logger.warning("Ignoring malformed frame: %s", exc)
                    continue
                await self._dispatch(frame)
        except TransportClosed as closed:
            code = closed.code
            logger.info("Realtime connection closed: %s", closed)
        except TransportError as exc:
            logger.warning("Realtime connection error: %s", exc)
            self._set_status(ConnectionStatus.ERROR)
        except Exception:
            logger.exception("Unexpected failure on realtime connection")
            self._set_status(ConnectionStatus.ERROR)
            await _close_quietly(transport)
        self._handle_close(code)

    async def _dispatch(self, frame: Any) -> None:
        if isinstance(frame, AuthSuccessFrame):
            self.authenticated = True
            self.reconnect_attempts = 0
            logger.info("Realtime channel authenticated")
            await self._invoke(self.on_authenticated)
        elif isinstance(frame, AuthErrorFrame):
            self.rejected = True
            logger.warning("Server rejected identity: %s", frame.message)
        await self._invoke(self.on_frame, frame)

    def _handle_close(self, code: int) -> None:
        self._transport = None
        self._reader = None
        self.authenticated = False
        self._set_status(ConnectionStatus.DISCONNECTED)

        if code == NORMAL_CLOSURE:
            self.reconnect_attempts = 0
            return
        if code == POLICY_VIOLATION or self.rejected:
            self.rejected = True
            logger.warning("Identity rejected; not reconnecting until it changes")
            self._fire(self.on_degraded)
            return
        if self._identity is None:
            return
        if self.reconnect_attempts < self.max_reconnect_attempts:
            delay = reconnect_delay(
                self.reconnect_attempts, base=self._base_delay, maximum=self._max_delay
            )
            self.reconnect_attempts += 1
            logger.info(
                "Reconnecting in %.1fs (attempt %d/%d)",
                delay,
                self.reconnect_attempts,
                self.max_reconnect_attempts,
            )
            self._reconnect_timer = self._scheduler.call_later(delay, self._open)
            return
        self.exhausted = True
        logger.warning(
            "Giving up after %d reconnect attempts; live updates unavailable",
            self.reconnect_attempts,
        )
        self._fire(self.on_degraded)

    def _set_status(self, status: ConnectionStatus) -> None:
        if status is not ConnectionStatus.CONNECTED:
            self._cancel_keepalive()
        if status is self._status:
            return
        self._status = status
        self._fire(self.on_status_change, status)

    def _schedule_keepalive(self) -> None:
        self._keepalive_timer = self._scheduler.call_later(
            self.keepalive_interval, self._keepalive_tick
        )

    def _keepalive_tick(self) -> None:
        self._keepalive_timer = None
        transport = self._transport
        if self._status is not ConnectionStatus.CONNECTED or transport is None:
            return
        self._spawn(self._send_ping(transport))
        self._schedule_keepalive()

    async def _send_ping(self, transport: Transport) -> None:
        try:
            await transport.send(encode_frame(PingFrame()))
        except TransportError as exc:
            # The reader observes the close and drives reconnection.
            logger.warning("Keepalive ping failed: %s", exc)

    def _cancel_keepalive(self) -> None:
        if self._keepalive_timer is not None:
            self._keepalive_timer.cancel()
            self._keepalive_timer = None

    def _cancel_reconnect(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None

    def _spawn(self, coroutine) -> None:
        task = asyncio.get_running_loop().create_task(coroutine)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _fire(self, callback: Callback | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
        except Exception:
            logger.exception("Connection callback %r failed", callback)
            return
        if inspect.isawaitable(result):
            self._spawn(_consume(result))

    async def _invoke(self, callback: Callback | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Connection callback %r failed", callback)


async def _close_quietly(transport: Transport) -> None:
    try:
        await transport.close(INTERNAL_ERROR, "Client error")
    except Exception as exc:
        logger.debug("Ignoring close failure on broken transport: %s", exc)


async def _consume(awaitable: Awaitable[Any]) -> None:
    try:
        await awaitable
    except Exception:
        logger.exception("Connection callback failed")


__all__ = [
    "ClientConnectionManager",
    "ConnectionStatus",
    "KEEPALIVE_INTERVAL",
    "MAX_RECONNECT_ATTEMPTS",
    "reconnect_delay",
]
