"""End-to-end tests for the realtime notification channel."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from app.config import get_settings
from app.domain.entities import Notification, NotificationType
from app.infrastructure.notifications import notification_hub
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_utc

AUTH_FRAME = {"type": "auth", "recipientId": "u-1", "role": "client"}


@pytest.fixture()
def client(db_session):
    from main import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def test_handshake_without_token_is_refused(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws"):
            pass

    assert exc_info.value.code == 1008


def test_handshake_with_invalid_token_is_refused(client: TestClient) -> None:
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws?token=forged"):
            pass

    assert exc_info.value.code == 1008


def test_session_registers_before_acknowledging_auth(client: TestClient, make_token) -> None:
    with client.websocket_connect(f"/ws?token={make_token('u-1')}") as websocket:
        assert notification_hub.sessions_for("u-1") == []

        websocket.send_json(AUTH_FRAME)
        reply = websocket.receive_json()

        assert reply == {"type": "auth_success", "message": "WebSocket authentication successful"}
        assert len(notification_hub.sessions_for("u-1")) == 1

        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}

    assert notification_hub.sessions_for("u-1") == []


def test_bearer_header_is_accepted(client: TestClient, make_token) -> None:
    headers = {"Authorization": f"Bearer {make_token('u-1')}"}
    with client.websocket_connect("/ws", headers=headers) as websocket:
        websocket.send_json(AUTH_FRAME)
        assert websocket.receive_json()["type"] == "auth_success"


def test_malformed_frames_are_ignored(client: TestClient, make_token) -> None:
    with client.websocket_connect(f"/ws?token={make_token('u-1')}") as websocket:
        websocket.send_text("{not json")
        websocket.send_json({"type": "subscribe"})
        websocket.send_json({"type": "ping"})

        assert websocket.receive_json() == {"type": "pong"}


def test_auth_frame_for_another_recipient_is_rejected(client: TestClient, make_token) -> None:
    with client.websocket_connect(f"/ws?token={make_token('u-1')}") as websocket:
        websocket.send_json({"type": "auth", "recipientId": "u-2", "role": "admin"})

        assert websocket.receive_json() == {"type": "auth_error", "message": "Identity rejected"}
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 1008
    assert notification_hub.sessions_for("u-2") == []


def test_unauthenticated_session_times_out(
    client: TestClient, make_token, monkeypatch
) -> None:
    monkeypatch.setattr(get_settings(), "auth_timeout_seconds", 0.05)

    with client.websocket_connect(f"/ws?token={make_token('u-1')}") as websocket:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 1008


def test_read_all_is_pushed_to_live_sessions(
    client: TestClient, db_session, make_token
) -> None:
    token = make_token("u-1")
    NotificationRepository(db_session).create(
        Notification(
            id=None,
            recipient_id="u-1",
            type=NotificationType.SYSTEM,
            title="Maintenance",
            message="Tonight",
            created_at=now_utc(),
        )
    )

    with client.websocket_connect(f"/ws?token={token}") as websocket:
        websocket.send_json(AUTH_FRAME)
        assert websocket.receive_json()["type"] == "auth_success"

        response = client.patch(
            "/notifications/read-all", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200

        assert websocket.receive_json() == {"type": "notification_read"}
        assert websocket.receive_json() == {"type": "count_update", "count": 0}
