"""Websocket transport used by :mod:`app.client.connection`."""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol
from urllib.parse import urlencode, urlsplit, urlunsplit

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

logger = logging.getLogger(__name__)

NORMAL_CLOSURE = 1000
GOING_AWAY = 1001
ABNORMAL_CLOSURE = 1006
POLICY_VIOLATION = 1008
INTERNAL_ERROR = 1011


class TransportError(ConnectionError):
    """The transport failed before or during the exchange of frames."""


class TransportClosed(TransportError):
    """The transport was closed; ``code`` is the websocket close code."""

    def __init__(self, code: int, reason: str = "") -> None:
        message = f"Connection closed with code {code}"
        super().__init__(f"{message}: {reason}" if reason else message)
        self.code = code
        self.reason = reason


class Transport(Protocol):
    async def send(self, text: str) -> None: ...

    async def receive(self) -> str: ...

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None: ...


class WebsocketTransport:
    """Adapt a ``websockets`` client connection to :class:`Transport`."""

    def __init__(self, connection) -> None:
        self._connection = connection

    async def send(self, text: str) -> None:
        try:
            await self._connection.send(text)
        except ConnectionClosed as exc:
            raise _closed(exc) from exc
        except WebSocketException as exc:
            raise TransportError(str(exc)) from exc

    async def receive(self) -> str:
        try:
            message = await self._connection.recv()
        except ConnectionClosed as exc:
            raise _closed(exc) from exc
        except WebSocketException as exc:
            raise TransportError(str(exc)) from exc
        if isinstance(message, bytes):
            return message.decode("utf-8", errors="replace")
        return message

    async def close(self, code: int = NORMAL_CLOSURE, reason: str = "") -> None:
        await self._connection.close(code=code, reason=reason)


def _closed(exc: ConnectionClosed) -> TransportClosed:
    received = exc.rcvd
    if received is None:
        return TransportClosed(ABNORMAL_CLOSURE, "Connection lost")
    return TransportClosed(received.code, received.reason)


async def open_websocket(url: str, *, open_timeout: float = 10.0) -> WebsocketTransport:
    """Open a websocket to ``url``; failures surface as :class:`TransportError`."""

    try:
        connection = await websockets.connect(
            url, open_timeout=open_timeout, ping_interval=None
        )
    except (OSError, WebSocketException, ValueError, asyncio.TimeoutError) as exc:
        raise TransportError(f"Could not connect to {url}: {exc}") from exc
    return WebsocketTransport(connection)


def build_websocket_url(base_url: str, path: str = "/ws", *, token: str | None = None) -> str:
    """Derive the realtime channel URL from the service origin.

    The channel is wrapped in TLS exactly when the origin is: ``https`` maps to
    ``wss`` and anything else to ``ws``.
    """

    parts = urlsplit(base_url)
    scheme = "wss" if parts.scheme in ("https", "wss") else "ws"
    query = urlencode({"token": token}) if token else ""
    return urlunsplit((scheme, parts.netloc, path, query, ""))


__all__ = [
    "ABNORMAL_CLOSURE",
    "GOING_AWAY",
    "INTERNAL_ERROR",
    "NORMAL_CLOSURE",
    "POLICY_VIOLATION",
    "Transport",
    "TransportClosed",
    "TransportError",
    "WebsocketTransport",
    "build_websocket_url",
    "open_websocket",
]
