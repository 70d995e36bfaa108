"""Server side state for one realtime notification connection."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from starlette.websockets import WebSocket, WebSocketDisconnect

from app.domain.entities import Identity
from app.schemas.frames import (
    AuthErrorFrame,
    AuthFrame,
    AuthSuccessFrame,
    PingFrame,
    PongFrame,
    ProtocolError,
    decode_client_frame,
    encode_frame,
)
from app.utils import now_utc

from .hub import NotificationHub

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011


class SessionState(str, Enum):
    AWAITING_AUTH = "awaiting-auth"
    AUTHENTICATED = "authenticated"
    CLOSING = "closing"


class SessionClosedError(ConnectionError):
    """Raised when sending on a session that is already closing."""


class ConnectionSession:
    """Own the handshake, keepalive bookkeeping and framing of one client.

    ``identity`` is the identity established by the transport (the token the
    client connected with). The client must confirm it with an ``auth`` frame
    before the session is registered with the hub.
    """

    def __init__(
        self,
        websocket: WebSocket,
        identity: Identity,
        hub: NotificationHub,
        *,
        send_timeout: float,
        auth_timeout: float,
    ) -> None:
        self._websocket = websocket
        self._identity = identity
        self._hub = hub
        self._send_timeout = send_timeout
        self._auth_timeout = auth_timeout
        self._send_lock = asyncio.Lock()
        self.recipient_id: str | None = None
        self.role: str | None = None
        self.state = SessionState.AWAITING_AUTH
        self.connected_at = now_utc()
        self.last_activity_at = self.connected_at

    @property
    def authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    async def send_text(self, text: str) -> None:
        """Send one encoded frame, preserving call order per session."""

        if self.state is SessionState.CLOSING:
            raise SessionClosedError("Session is closing")
        async with self._send_lock:
            await asyncio.wait_for(
                self._websocket.send_text(text), timeout=self._send_timeout
            )

    async def send_frame(self, frame) -> None:
        await self.send_text(encode_frame(frame))

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        """Unregister and close the transport; repeated calls are no-ops."""

        if self.state is SessionState.CLOSING:
            return
        self.state = SessionState.CLOSING
        self._hub.unregister(self)
        await self._websocket.close(code=code, reason=reason)

    async def run(self) -> None:
        """Accept the connection and process inbound frames in arrival order."""

        await self._websocket.accept()
        loop = asyncio.get_running_loop()
        auth_deadline = loop.time() + self._auth_timeout
        try:
            while self.state is not SessionState.CLOSING:
                timeout = None
                if self.state is SessionState.AWAITING_AUTH:
                    timeout = max(auth_deadline - loop.time(), 0)
                try:
                    text = await asyncio.wait_for(self._receive_text(), timeout)
                except asyncio.TimeoutError:
                    logger.info("Closing connection that never authenticated")
                    await self.close(POLICY_VIOLATION, "Authentication timeout")
                    return
                self.last_activity_at = now_utc()
                try:
                    frame = decode_client_frame(text)
                except ProtocolError as exc:
                    logger.warning("Ignoring malformed frame: %s", exc)
                    continue
                await self.handle_frame(frame)
        except WebSocketDisconnect as exc:
            logger.info(
                "Connection for recipient %s closed with code %s",
                self.recipient_id or "<unauthenticated>",
                exc.code,
            )
        except Exception:
            logger.exception(
                "Unexpected failure in session for recipient %s",
                self.recipient_id or "<unauthenticated>",
            )
            await self.close(INTERNAL_ERROR, "Internal error")
            raise
        finally:
            self.state = SessionState.CLOSING
            self._hub.unregister(self)

    async def handle_frame(self, frame: AuthFrame | PingFrame) -> None:
        if isinstance(frame, PingFrame):
            await self.send_frame(PongFrame())
        elif isinstance(frame, AuthFrame):
            await self._authenticate(frame)

    async def _authenticate(self, frame: AuthFrame) -> None:
        expected = self._identity
        if frame.recipient_id != expected.recipient_id or frame.role != expected.role:
            logger.warning(
                "Rejecting auth frame for %s (%s); connection belongs to %s",
                frame.recipient_id,
                frame.role,
                expected.recipient_id,
            )
            await self.send_frame(AuthErrorFrame(message="Identity rejected"))
            await self.close(POLICY_VIOLATION, "Authentication failed")
            return

        self.recipient_id = expected.recipient_id
        self.role = expected.role
        if self.state is not SessionState.AUTHENTICATED:
            self.state = SessionState.AUTHENTICATED
            # Registered before acknowledging: once the client sees
            # auth_success every later delivery reaches this session.
            self._hub.register(self, expected.recipient_id, expected.role)
        await self.send_frame(
            AuthSuccessFrame(message="WebSocket authentication successful")
        )

    async def _receive_text(self) -> str:
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", NORMAL_CLOSURE), message.get("reason"))
        if message.get("text") is not None:
            return message["text"]
        return (message.get("bytes") or b"").decode("utf-8", errors="replace")


__all__ = ["ConnectionSession", "SessionClosedError", "SessionState"]
