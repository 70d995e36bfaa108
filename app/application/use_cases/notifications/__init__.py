"""Public helpers for emitting domain notifications."""

from .events import (
    AssessmentRef,
    Person,
    notify_assessment_completed,
    notify_assessment_locked,
    notify_assessment_started,
    notify_assessment_submitted,
    notify_assessment_unlocked,
    notify_edit_request_approved,
    notify_edit_request_created,
    notify_edit_request_denied,
    notify_editing_completed,
    notify_report_ready,
)

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
