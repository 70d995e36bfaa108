"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text

from app.infrastructure.database import Base
from app.utils import now_naive_utc


class NotificationModel(Base):
    """Database representation for recipient notifications."""

    __tablename__ = "notification"

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(String(64), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    priority = Column(String(10), nullable=False, default="medium")
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    related_entity = Column(JSON, nullable=True)
    extra = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_naive_utc)
    read_at = Column(DateTime(), nullable=True)


__all__ = ["NotificationModel"]
