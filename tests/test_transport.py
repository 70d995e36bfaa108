"""Tests for the websocket transport adapter."""

from __future__ import annotations

import pytest
from websockets.exceptions import ConnectionClosed
from websockets.frames import Close

from app.client import build_websocket_url
from app.client.transport import TransportClosed, WebsocketTransport


@pytest.mark.parametrize(
    ("base_url", "expected"),
    [
        ("http://localhost:8000", "ws://localhost:8000/ws"),
        ("https://notify.example.com", "wss://notify.example.com/ws"),
        ("https://notify.example.com/app/", "wss://notify.example.com/ws"),
    ],
)
def test_websocket_url_follows_origin_scheme(base_url, expected):
    assert build_websocket_url(base_url) == expected


def test_websocket_url_carries_token():
    url = build_websocket_url("https://notify.example.com", "/realtime", token="a b")

    assert url == "wss://notify.example.com/realtime?token=a+b"


class ClosedConnection:
    def __init__(self, error: ConnectionClosed) -> None:
        self.error = error

    async def recv(self):
        raise self.error

    async def send(self, text):
        raise self.error


@pytest.mark.anyio
async def test_received_close_frame_is_reported_with_its_code():
    transport = WebsocketTransport(
        ClosedConnection(ConnectionClosed(Close(1008, "Authentication failed"), None))
    )

    with pytest.raises(TransportClosed) as exc_info:
        await transport.receive()

    assert exc_info.value.code == 1008
    assert exc_info.value.reason == "Authentication failed"


@pytest.mark.anyio
async def test_lost_connection_is_reported_as_abnormal_closure():
    transport = WebsocketTransport(ClosedConnection(ConnectionClosed(None, None)))

    with pytest.raises(TransportClosed) as exc_info:
        await transport.send("{}")

    assert exc_info.value.code == 1006
