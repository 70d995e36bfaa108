"""Utility helpers to generate and dispatch domain notifications.

Callers decide *when* an event happened; these helpers only decide who hears
about it and with which wording.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Session

from app.domain.entities import Notification, NotificationPriority, NotificationType
from app.infrastructure.notifications import publish_notification
from app.utils import now_utc


@dataclass(frozen=True)
class AssessmentRef:
    """Identifiers of the assessment a notification points at."""

    id: int
    public_id: str | None
    building_name: str
    client_name: str | None = None

    def as_related_entity(self) -> dict[str, Any]:
        return {
            "assessment_id": self.id,
            "assessment_public_id": self.public_id,
            "building_name": self.building_name,
            "client_name": self.client_name,
        }


@dataclass(frozen=True)
class Person:
    """Minimal description of a user taking part in an event."""

    id: str
    name: str


def _persist_notification(
    session: Session,
    *,
    recipient_id: str,
    type: NotificationType,
    title: str,
    message: str,
    priority: NotificationPriority,
    assessment: AssessmentRef,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        id=None,
        recipient_id=recipient_id,
        type=type,
        title=title,
        message=message,
        priority=priority,
        created_at=now_utc(),
        related_entity=assessment.as_related_entity(),
        metadata=metadata or {},
    )
    return publish_notification(session, notification)


def _unique(recipients: Iterable[str | None]) -> list[str]:
    unique: list[str] = []
    for recipient in recipients:
        if recipient and recipient not in unique:
            unique.append(recipient)
    return unique


def notify_assessment_started(
    session: Session,
    *,
    assessment: AssessmentRef,
    assessor: Person,
    client_id: str | None,
    admin_ids: Iterable[str],
) -> list[Notification]:
    """Tell admins and the client that an assessor began work."""

    sent = [
        _persist_notification(
            session,
            recipient_id=admin_id,
            type=NotificationType.ASSESSMENT_STARTED,
            title="Assessment Started",
            message=f"{assessor.name} started the assessment for {assessment.building_name}",
            priority=NotificationPriority.LOW,
            assessment=assessment,
            metadata={"assessor_id": assessor.id, "assessor_name": assessor.name},
        )
        for admin_id in _unique(admin_ids)
    ]
    if client_id:
        sent.append(
            _persist_notification(
                session,
                recipient_id=client_id,
                type=NotificationType.ASSESSMENT_STARTED,
                title="Your Assessment Has Started",
                message=f"The assessment for {assessment.building_name} is now in progress",
                priority=NotificationPriority.MEDIUM,
                assessment=assessment,
                metadata={"assessor_id": assessor.id, "assessor_name": assessor.name},
            )
        )
    return sent


def notify_assessment_submitted(
    session: Session,
    *,
    assessment: AssessmentRef,
    assessor: Person,
    client_id: str | None,
    admin_ids: Iterable[str],
) -> list[Notification]:
    """Tell admins and the client that an assessment awaits final review."""

    metadata = {"assessor_id": assessor.id, "assessor_name": assessor.name}
    sent = [
        _persist_notification(
            session,
            recipient_id=admin_id,
            type=NotificationType.ASSESSMENT_SUBMITTED,
            title="Assessment Submitted",
            message=f"Assessment for {assessment.building_name} has been submitted for final review",
            priority=NotificationPriority.HIGH,
            assessment=assessment,
            metadata={**metadata, "client_id": client_id},
        )
        for admin_id in _unique(admin_ids)
    ]
    if client_id:
        sent.append(
            _persist_notification(
                session,
                recipient_id=client_id,
                type=NotificationType.ASSESSMENT_SUBMITTED,
                title="Assessment Submitted for Review",
                message=(
                    f"Your building assessment for {assessment.building_name} "
                    "has been submitted for final review"
                ),
                priority=NotificationPriority.MEDIUM,
                assessment=assessment,
                metadata=metadata,
            )
        )
    return sent


def notify_assessment_completed(
    session: Session,
    *,
    assessment: AssessmentRef,
    assessor: Person,
    client_id: str | None,
    admin_ids: Iterable[str],
) -> list[Notification]:
    metadata = {"assessor_id": assessor.id, "assessor_name": assessor.name}
    sent = [
        _persist_notification(
            session,
            recipient_id=admin_id,
            type=NotificationType.ASSESSMENT_COMPLETED,
            title="Assessment Completed",
            message=(
                f"Assessment for {assessment.building_name} has been completed "
                f"by {assessor.name}"
            ),
            priority=NotificationPriority.MEDIUM,
            assessment=assessment,
            metadata={**metadata, "client_id": client_id},
        )
        for admin_id in _unique(admin_ids)
    ]
    if client_id:
        sent.append(
            _persist_notification(
                session,
                recipient_id=client_id,
                type=NotificationType.ASSESSMENT_COMPLETED,
                title="Your Assessment is Complete",
                message=(
                    f"Your building assessment for {assessment.building_name} has been "
                    "completed and is ready for review"
                ),
                priority=NotificationPriority.HIGH,
                assessment=assessment,
                metadata=metadata,
            )
        )
    return sent


def notify_report_ready(
    session: Session,
    *,
    assessment: AssessmentRef,
    client_id: str,
    overall_score: float | None = None,
    max_possible_score: float | None = None,
) -> Notification:
    return _persist_notification(
        session,
        recipient_id=client_id,
        type=NotificationType.REPORT_READY,
        title="Assessment Report Ready",
        message=(
            f"Your green building assessment report for {assessment.building_name} "
            "is now ready for download"
        ),
        priority=NotificationPriority.HIGH,
        assessment=assessment,
        metadata={"overall_score": overall_score, "max_possible_score": max_possible_score},
    )


def notify_edit_request_created(
    session: Session,
    *,
    assessment: AssessmentRef,
    requester: Person,
    owner_id: str | None,
    admin_ids: Iterable[str],
    reason: str,
) -> list[Notification]:
    """Ask admins to review an edit request and warn the assessment owner."""

    metadata = {
        "requesting_user_id": requester.id,
        "requesting_user_name": requester.name,
        "reason": reason,
    }
    sent = [
        _persist_notification(
            session,
            recipient_id=admin_id,
            type=NotificationType.EDIT_REQUEST_CREATED,
            title="Edit Request Created",
            message=(
                f"{requester.name} has requested permission to edit "
                f"{assessment.building_name}"
            ),
            priority=NotificationPriority.HIGH,
            assessment=assessment,
            metadata=metadata,
        )
        for admin_id in _unique(admin_ids)
    ]
    if owner_id and owner_id != requester.id:
        sent.append(
            _persist_notification(
                session,
                recipient_id=owner_id,
                type=NotificationType.EDIT_REQUEST_CREATED,
                title="Edit Request for Your Assessment",
                message=(
                    f"{requester.name} has requested permission to edit your assessment "
                    f"for {assessment.building_name}"
                ),
                priority=NotificationPriority.MEDIUM,
                assessment=assessment,
                metadata=metadata,
            )
        )
    return sent


def notify_edit_request_approved(
    session: Session,
    *,
    assessment: AssessmentRef,
    requester_id: str,
    approver: Person,
) -> Notification:
    return _persist_notification(
        session,
        recipient_id=requester_id,
        type=NotificationType.EDIT_REQUEST_APPROVED,
        title="Edit Request Approved",
        message=(
            f"Your request to edit {assessment.building_name} has been approved "
            f"by {approver.name}"
        ),
        priority=NotificationPriority.HIGH,
        assessment=assessment,
        metadata={"approving_admin_id": approver.id, "approving_admin_name": approver.name},
    )


def notify_edit_request_denied(
    session: Session,
    *,
    assessment: AssessmentRef,
    requester_id: str,
    denier: Person,
    reason: str | None = None,
) -> Notification:
    suffix = f": {reason}" if reason else ""
    return _persist_notification(
        session,
        recipient_id=requester_id,
        type=NotificationType.EDIT_REQUEST_DENIED,
        title="Edit Request Denied",
        message=f"Your request to edit {assessment.building_name} has been denied{suffix}",
        priority=NotificationPriority.MEDIUM,
        assessment=assessment,
        metadata={
            "denying_admin_id": denier.id,
            "denying_admin_name": denier.name,
            "reason": reason,
        },
    )


def notify_assessment_locked(
    session: Session,
    *,
    assessment: AssessmentRef,
    locked_by: Person,
    assessor_id: str | None,
    client_id: str | None,
    reason: str | None = None,
) -> list[Notification]:
    metadata = {"locking_admin_id": locked_by.id, "locking_admin_name": locked_by.name}
    sent: list[Notification] = []
    if assessor_id:
        suffix = f": {reason}" if reason else ""
        sent.append(
            _persist_notification(
                session,
                recipient_id=assessor_id,
                type=NotificationType.ASSESSMENT_LOCKED,
                title="Assessment Locked",
                message=(
                    f"Your assessment for {assessment.building_name} has been locked "
                    f"by {locked_by.name}{suffix}"
                ),
                priority=NotificationPriority.HIGH,
                assessment=assessment,
                metadata={**metadata, "reason": reason},
            )
        )
    if client_id:
        sent.append(
            _persist_notification(
                session,
                recipient_id=client_id,
                type=NotificationType.ASSESSMENT_LOCKED,
                title="Assessment Status Update",
                message=f"Your assessment for {assessment.building_name} has been locked for review",
                priority=NotificationPriority.MEDIUM,
                assessment=assessment,
                metadata=metadata,
            )
        )
    return sent


def notify_assessment_unlocked(
    session: Session,
    *,
    assessment: AssessmentRef,
    unlocked_by: Person,
    assessor_id: str,
) -> Notification:
    return _persist_notification(
        session,
        recipient_id=assessor_id,
        type=NotificationType.ASSESSMENT_UNLOCKED,
        title="Assessment Unlocked",
        message=(
            f"Your assessment for {assessment.building_name} has been unlocked "
            "and is available for editing"
        ),
        priority=NotificationPriority.MEDIUM,
        assessment=assessment,
        metadata={
            "unlocking_admin_id": unlocked_by.id,
            "unlocking_admin_name": unlocked_by.name,
        },
    )


def notify_editing_completed(
    session: Session,
    *,
    assessment: AssessmentRef,
    editor: Person,
    admin_ids: Iterable[str],
) -> list[Notification]:
    """Tell admins that an approved edit finished and the assessment relocked."""

    return [
        _persist_notification(
            session,
            recipient_id=admin_id,
            type=NotificationType.EDITING_COMPLETED,
            title="Editing Completed",
            message=(
                f"{editor.name} finished editing {assessment.building_name}; "
                "the assessment is locked again"
            ),
            priority=NotificationPriority.MEDIUM,
            assessment=assessment,
            metadata={"editor_id": editor.id, "editor_name": editor.name},
        )
        for admin_id in _unique(admin_ids)
    ]


__all__ = [
    "AssessmentRef",
    "Person",
    "notify_assessment_started",
    "notify_assessment_submitted",
    "notify_assessment_completed",
    "notify_report_ready",
    "notify_edit_request_created",
    "notify_edit_request_approved",
    "notify_edit_request_denied",
    "notify_assessment_locked",
    "notify_assessment_unlocked",
    "notify_editing_completed",
]
