"""Tests for domain event notifications and their realtime push."""

from __future__ import annotations

import asyncio
import json

import anyio
import pytest

from app.application.use_cases.notifications import (
    AssessmentRef,
    Person,
    notify_assessment_started,
    notify_edit_request_created,
    notify_edit_request_denied,
    notify_report_ready,
)
from app.domain.entities import Notification, NotificationPriority, NotificationType
from app.infrastructure.notifications import NotificationHub, NotificationPublisher
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_utc

ASSESSMENT = AssessmentRef(id=12, public_id="GB-0012", building_name="Harbor Tower", client_name="Acme")
ASSESSOR = Person(id="as-1", name="Ana Assessor")


class RecordingSession:
    def __init__(self) -> None:
        self.sent: list[dict] = []
        self.last_activity_at = now_utc()

    async def send_text(self, text: str) -> None:
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        pass


def test_assessment_started_notifies_unique_admins_and_client(db_session):
    sent = notify_assessment_started(
        db_session,
        assessment=ASSESSMENT,
        assessor=ASSESSOR,
        client_id="cl-1",
        admin_ids=["ad-1", "ad-2", "ad-1"],
    )

    assert [n.recipient_id for n in sent] == ["ad-1", "ad-2", "cl-1"]
    assert all(n.type is NotificationType.ASSESSMENT_STARTED for n in sent)
    assert sent[0].priority is NotificationPriority.LOW
    assert sent[-1].priority is NotificationPriority.MEDIUM
    assert sent[-1].related_entity == {
        "assessment_id": 12,
        "assessment_public_id": "GB-0012",
        "building_name": "Harbor Tower",
        "client_name": "Acme",
    }
    assert NotificationRepository(db_session).count_unread("ad-1") == 1


def test_edit_request_skips_owner_who_is_requester(db_session):
    sent = notify_edit_request_created(
        db_session,
        assessment=ASSESSMENT,
        requester=ASSESSOR,
        owner_id=ASSESSOR.id,
        admin_ids=["ad-1"],
        reason="Fix floor area",
    )

    assert [n.recipient_id for n in sent] == ["ad-1"]
    assert sent[0].metadata["reason"] == "Fix floor area"


def test_denied_message_includes_reason(db_session):
    sent = notify_edit_request_denied(
        db_session,
        assessment=ASSESSMENT,
        requester_id="as-1",
        denier=Person(id="ad-1", name="Admin"),
        reason="Assessment already certified",
    )

    assert sent.message.endswith(": Assessment already certified")
    assert sent.type is NotificationType.EDIT_REQUEST_DENIED


@pytest.mark.anyio
async def test_publish_pushes_notification_with_unread_count(db_session):
    hub = NotificationHub()
    publisher = NotificationPublisher(hub)
    session = RecordingSession()
    hub.register(session, "cl-1", "client")

    saved = publisher.publish(
        db_session,
        Notification(
            id=None,
            recipient_id="cl-1",
            type=NotificationType.REPORT_READY,
            title="Assessment Report Ready",
            message="Ready",
            created_at=now_utc(),
        ),
    )
    for _ in range(5):
        await asyncio.sleep(0)

    assert len(session.sent) == 1
    frame = session.sent[0]
    assert frame["type"] == "new_notification"
    assert frame["count"] == 1
    assert frame["notification"]["id"] == saved.id
    assert frame["notification"]["recipientId"] == "cl-1"
    assert frame["notification"]["isRead"] is False


@pytest.mark.anyio
async def test_dispatch_read_sends_read_then_count(db_session):
    hub = NotificationHub()
    publisher = NotificationPublisher(hub)
    session = RecordingSession()
    hub.register(session, "cl-1", "client")

    publisher.dispatch_read("cl-1", 2, notification_id=5)
    for _ in range(5):
        await asyncio.sleep(0)

    assert session.sent == [
        {"type": "notification_read", "notificationId": 5},
        {"type": "count_update", "count": 2},
    ]


def test_report_ready_without_live_loop_still_persists(db_session):
    saved = notify_report_ready(db_session, assessment=ASSESSMENT, client_id="cl-9", overall_score=71.5)

    assert saved.id is not None
    assert saved.metadata["overall_score"] == 71.5
    assert NotificationRepository(db_session).count_unread("cl-9") == 1


class GatedSession(RecordingSession):
    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def send_text(self, text: str) -> None:
        await self.gate.wait()
        await super().send_text(text)


@pytest.mark.anyio
async def test_dispatch_from_worker_thread_returns_before_the_send():
    hub = NotificationHub()
    publisher = NotificationPublisher(hub)
    session = GatedSession()
    hub.register(session, "cl-1", "client")

    with anyio.fail_after(5):
        await anyio.to_thread.run_sync(publisher.dispatch_count, "cl-1", 2)

    assert session.sent == []

    session.gate.set()
    for _ in range(5):
        await asyncio.sleep(0)

    assert session.sent == [{"type": "count_update", "count": 2}]
