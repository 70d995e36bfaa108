"""Tests for the notification repository."""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.domain.entities import Notification, NotificationPriority, NotificationType
from app.infrastructure.repositories import NotificationRepository
from app.utils import now_utc


def _notification(recipient_id: str = "u-1", **overrides) -> Notification:
    values = {
        "id": None,
        "recipient_id": recipient_id,
        "type": NotificationType.SYSTEM,
        "title": "Maintenance",
        "message": "The platform restarts tonight",
        "created_at": now_utc(),
    }
    values.update(overrides)
    return Notification(**values)


def test_create_assigns_id_and_keeps_opaque_payloads(db_session):
    repository = NotificationRepository(db_session)

    saved = repository.create(
        _notification(
            priority=NotificationPriority.HIGH,
            related_entity={"assessment_id": 3},
            metadata={"assessor_name": "Ana"},
        )
    )

    assert saved.id is not None
    loaded = repository.get(saved.id)
    assert loaded.priority is NotificationPriority.HIGH
    assert loaded.related_entity == {"assessment_id": 3}
    assert loaded.metadata == {"assessor_name": "Ana"}
    assert loaded.is_read is False
    assert loaded.created_at.tzinfo is not None


def test_create_rejects_existing_id(db_session):
    with pytest.raises(ValueError):
        NotificationRepository(db_session).create(_notification(id=5))


def test_read_notification_requires_read_timestamp():
    with pytest.raises(ValueError):
        _notification(is_read=True)


def test_mark_read_keeps_first_read_timestamp(db_session):
    repository = NotificationRepository(db_session)
    saved = repository.create(_notification())

    assert repository.mark_read(saved.id, recipient_id="u-1") is True
    first_read_at = repository.get(saved.id).read_at
    assert first_read_at is not None

    assert repository.mark_read(saved.id, recipient_id="u-1") is True
    assert repository.get(saved.id).read_at == first_read_at


def test_mark_read_ignores_other_recipients(db_session):
    repository = NotificationRepository(db_session)
    saved = repository.create(_notification())

    assert repository.mark_read(saved.id, recipient_id="u-2") is False
    assert repository.mark_read(9999, recipient_id="u-1") is False
    assert repository.get(saved.id).is_read is False


def test_unread_count_and_mark_all_read(db_session):
    repository = NotificationRepository(db_session)
    for _ in range(3):
        repository.create(_notification())
    repository.create(_notification("u-2"))

    assert repository.count_unread("u-1") == 3
    assert repository.mark_all_read("u-1") == 3
    assert repository.count_unread("u-1") == 0
    assert repository.count_unread("u-2") == 1
    assert repository.mark_all_read("u-1") == 0


def test_list_is_newest_first_and_filterable(db_session):
    repository = NotificationRepository(db_session)
    now = now_utc()
    older = repository.create(_notification(title="older", created_at=now - timedelta(hours=1)))
    newer = repository.create(_notification(title="newer", created_at=now))
    repository.mark_read(older.id, recipient_id="u-1")

    assert [n.id for n in repository.list_for_recipient("u-1")] == [newer.id, older.id]
    assert [n.id for n in repository.list_for_recipient("u-1", is_read=False)] == [newer.id]
    assert [n.id for n in repository.list_for_recipient("u-1", is_read=True)] == [older.id]
    assert len(repository.list_for_recipient("u-1", limit=1)) == 1


def test_delete_only_removes_own_notifications(db_session):
    repository = NotificationRepository(db_session)
    saved = repository.create(_notification())

    assert repository.delete(saved.id, recipient_id="u-2") is False
    assert repository.delete(saved.id, recipient_id="u-1") is True
    assert repository.get(saved.id) is None
