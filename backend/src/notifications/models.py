"""Notification tracking model."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from ..database.base import Base


class NotificationLog(Base):
    """One row per delivery outcome, successful or not."""

    __tablename__ = "notification_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    schedule_id = Column(
        UUID(as_uuid=True),
        ForeignKey("interview_schedules.id", ondelete="CASCADE"),
        nullable=False,
    )
    participant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("interview_participants.id", ondelete="CASCADE"),
        nullable=True,
    )
    notification_type = Column(String(50), nullable=False)  # interview_invitation / interview_confirmation
    recipient = Column(String(255), nullable=False)
    subject = Column(String(500), default="")
    status = Column(String(20), nullable=False)  # sent / failed
    attempts = Column(Integer, default=1)
    detail = Column(Text, default="")
    sent_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (Index("idx_notif_schedule_type", "schedule_id", "notification_type"),)
