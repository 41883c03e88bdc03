"""Add interview scheduling tables: schedules, slots, participants, votes.

Revision ID: 003
Revises: 002
Create Date: 2025-10-13
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "003"
down_revision: str | None = "002"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

schedule_status = sa.Enum("collecting", "scheduled", name="schedule_status")


def upgrade() -> None:
    op.create_table(
        "interview_schedules",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("application_id", UUID(as_uuid=True), nullable=False),
        sa.Column("job_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "created_by_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("interview_duration_minutes", sa.Integer(), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("status", schedule_status, nullable=False, server_default="collecting"),
        sa.Column("candidate_name", sa.String(255), server_default=""),
        sa.Column("job_title", sa.String(255), server_default=""),
        sa.Column("company_name", sa.String(255), server_default=""),
        sa.Column("recruiter_name", sa.String(255), server_default=""),
        sa.Column("scheduled_start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "confirmed_by_user_id", UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_schedules_application", "interview_schedules", ["application_id"])
    op.create_index("idx_schedules_created", "interview_schedules", ["created_at"])

    op.create_table(
        "interview_time_slots",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "interview_schedule_id",
            UUID(as_uuid=True),
            sa.ForeignKey("interview_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_slots_schedule", "interview_time_slots", ["interview_schedule_id", "position"])

    op.create_table(
        "interview_participants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "interview_schedule_id",
            UUID(as_uuid=True),
            sa.ForeignKey("interview_schedules.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("vote_token", sa.String(128), nullable=False),
        sa.Column("has_responded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_interview_participants_vote_token", "interview_participants", ["vote_token"], unique=True)
    op.create_index("idx_participants_schedule", "interview_participants", ["interview_schedule_id", "position"])

    op.create_table(
        "interview_availability_votes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "interview_participant_id",
            UUID(as_uuid=True),
            sa.ForeignKey("interview_participants.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "interview_time_slot_id",
            UUID(as_uuid=True),
            sa.ForeignKey("interview_time_slots.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("interview_participant_id", "interview_time_slot_id", name="uq_vote_participant_slot"),
    )
    op.create_index("idx_votes_slot", "interview_availability_votes", ["interview_time_slot_id"])


def downgrade() -> None:
    op.drop_table("interview_availability_votes")
    op.drop_table("interview_participants")
    op.drop_table("interview_time_slots")
    op.drop_table("interview_schedules")
    schedule_status.drop(op.get_bind(), checkfirst=True)
