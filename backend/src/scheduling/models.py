"""Interview scheduling models: schedules, slots, participants and votes."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..database.base import Base


class ScheduleStatus(enum.StrEnum):
    """Schedule lifecycle. ``scheduled`` is terminal."""

    COLLECTING = "collecting"
    SCHEDULED = "scheduled"


class InterviewSchedule(Base):
    __tablename__ = "interview_schedules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    application_id = Column(UUID(as_uuid=True), nullable=False)
    job_id = Column(UUID(as_uuid=True), nullable=False)
    created_by_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    interview_duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    status = Column(
        SQLEnum(ScheduleStatus, name="schedule_status", values_callable=lambda e: [s.value for s in e]),
        nullable=False,
        default=ScheduleStatus.COLLECTING,
    )

    # Labels shown in participant emails
    candidate_name = Column(String(255), default="")
    job_title = Column(String(255), default="")
    company_name = Column(String(255), default="")
    recruiter_name = Column(String(255), default="")

    # Set together by confirmation, never edited afterwards
    scheduled_start_time = Column(DateTime(timezone=True), nullable=True)
    scheduled_end_time = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_by_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    time_slots = relationship(
        "InterviewTimeSlot",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="InterviewTimeSlot.position",
    )
    participants = relationship(
        "InterviewParticipant",
        back_populates="schedule",
        cascade="all, delete-orphan",
        order_by="InterviewParticipant.position",
    )

    __table_args__ = (
        Index("idx_schedules_application", "application_id"),
        Index("idx_schedules_created", "created_at"),
    )

    @property
    def is_scheduled(self) -> bool:
        return self.status == ScheduleStatus.SCHEDULED


class InterviewTimeSlot(Base):
    __tablename__ = "interview_time_slots"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    interview_schedule_id = Column(
        UUID(as_uuid=True),
        ForeignKey("interview_schedules.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Generation order; ranking ties fall back to it
    position = Column(Integer, nullable=False, default=0)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    schedule = relationship("InterviewSchedule", back_populates="time_slots")

    __table_args__ = (Index("idx_slots_schedule", "interview_schedule_id", "position"),)


class InterviewParticipant(Base):
    __tablename__ = "interview_participants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    interview_schedule_id = Column(
        UUID(as_uuid=True),
        ForeignKey("interview_schedules.id", ondelete="CASCADE"),
        nullable=False,
    )
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    vote_token = Column(String(128), nullable=False, unique=True, index=True)
    has_responded = Column(Boolean, nullable=False, default=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    schedule = relationship("InterviewSchedule", back_populates="participants")
    votes = relationship(
        "AvailabilityVote",
        back_populates="participant",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("idx_participants_schedule", "interview_schedule_id", "position"),)


class AvailabilityVote(Base):
    __tablename__ = "interview_availability_votes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    interview_participant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("interview_participants.id", ondelete="CASCADE"),
        nullable=False,
    )
    interview_time_slot_id = Column(
        UUID(as_uuid=True),
        ForeignKey("interview_time_slots.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    participant = relationship("InterviewParticipant", back_populates="votes")

    __table_args__ = (
        UniqueConstraint("interview_participant_id", "interview_time_slot_id", name="uq_vote_participant_slot"),
        Index("idx_votes_slot", "interview_time_slot_id"),
    )
