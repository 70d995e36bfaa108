"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.entities import NotificationPriority, NotificationType


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None
    related_entity: dict[str, Any] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class UnreadCount(BaseModel):
    count: int = Field(..., ge=0)


class MessageResponse(BaseModel):
    message: str
    updated: int | None = None


__all__ = ["MessageResponse", "NotificationRead", "UnreadCount"]
