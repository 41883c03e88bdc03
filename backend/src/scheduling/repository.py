"""Persistence for interview scheduling.

Functions take the caller's session and only ``flush``; committing (and
rolling back on failure) is the caller's job, so a multi-step operation runs
in one transaction.
"""

import secrets
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from .models import (
    AvailabilityVote,
    InterviewParticipant,
    InterviewSchedule,
    InterviewTimeSlot,
    ScheduleStatus,
)
from .slots import SlotWindow

VOTE_TOKEN_BYTES = 32


def new_vote_token() -> str:
    """Random URL-safe capability token (256 bits)."""
    return secrets.token_urlsafe(VOTE_TOKEN_BYTES)


def create_schedule(
    db: Session,
    *,
    application_id: UUID,
    job_id: UUID,
    created_by_user_id: UUID | None,
    duration_minutes: int,
    timezone: str,
    candidate_name: str = "",
    job_title: str = "",
    company_name: str = "",
    recruiter_name: str = "",
) -> InterviewSchedule:
    schedule = InterviewSchedule(
        application_id=application_id,
        job_id=job_id,
        created_by_user_id=created_by_user_id,
        interview_duration_minutes=duration_minutes,
        timezone=timezone,
        status=ScheduleStatus.COLLECTING,
        candidate_name=candidate_name,
        job_title=job_title,
        company_name=company_name,
        recruiter_name=recruiter_name,
    )
    db.add(schedule)
    db.flush()
    return schedule


def bulk_insert_slots(db: Session, schedule: InterviewSchedule, windows: Sequence[SlotWindow]) -> list[InterviewTimeSlot]:
    slots = [
        InterviewTimeSlot(
            interview_schedule_id=schedule.id,
            position=position,
            start_time=window.start,
            end_time=window.end,
        )
        for position, window in enumerate(windows)
    ]
    db.add_all(slots)
    db.flush()
    return slots


def bulk_insert_participants(
    db: Session,
    schedule: InterviewSchedule,
    invites: Sequence[dict],
) -> list[InterviewParticipant]:
    """Create one participant per invite (``name``/``email``/``timezone``), each with its own token."""
    participants = [
        InterviewParticipant(
            interview_schedule_id=schedule.id,
            position=position,
            name=invite["name"],
            email=invite["email"],
            timezone=invite.get("timezone") or schedule.timezone,
            vote_token=new_vote_token(),
            has_responded=False,
        )
        for position, invite in enumerate(invites)
    ]
    db.add_all(participants)
    db.flush()
    return participants


def get_schedule_with_slots_and_votes(db: Session, schedule_id: UUID) -> InterviewSchedule | None:
    return (
        db.query(InterviewSchedule)
        .options(
            selectinload(InterviewSchedule.time_slots),
            selectinload(InterviewSchedule.participants).selectinload(InterviewParticipant.votes),
        )
        .filter(InterviewSchedule.id == schedule_id)
        .first()
    )


def get_latest_schedule_for_application(db: Session, application_id: UUID) -> InterviewSchedule | None:
    return (
        db.query(InterviewSchedule)
        .options(
            selectinload(InterviewSchedule.time_slots),
            selectinload(InterviewSchedule.participants).selectinload(InterviewParticipant.votes),
        )
        .filter(InterviewSchedule.application_id == application_id)
        .order_by(InterviewSchedule.created_at.desc())
        .first()
    )


def get_participant_by_token(db: Session, token: str, *, for_update: bool = False) -> InterviewParticipant | None:
    """Look a participant up by vote token.

    ``for_update`` takes a row lock so two submissions from the same
    participant serialize (ignored by SQLite).
    """
    query = db.query(InterviewParticipant).filter(InterviewParticipant.vote_token == token)
    if for_update:
        query = query.with_for_update()
    return query.first()


def get_slot(db: Session, slot_id: UUID) -> InterviewTimeSlot | None:
    return db.query(InterviewTimeSlot).filter(InterviewTimeSlot.id == slot_id).first()


def get_slot_ids_for_schedule(db: Session, schedule_id: UUID) -> set[UUID]:
    rows = db.query(InterviewTimeSlot.id).filter(InterviewTimeSlot.interview_schedule_id == schedule_id).all()
    return {row[0] for row in rows}


def replace_participant_votes(
    db: Session,
    participant: InterviewParticipant,
    slot_ids: Iterable[UUID],
) -> list[AvailabilityVote]:
    """Swap the participant's whole vote set and mark them as responded.

    The delete is flushed before the inserts so re-voting for the same slot
    never trips the (participant, slot) unique constraint.
    """
    db.query(AvailabilityVote).filter(
        AvailabilityVote.interview_participant_id == participant.id
    ).delete(synchronize_session="fetch")
    db.flush()

    votes = [
        AvailabilityVote(interview_participant_id=participant.id, interview_time_slot_id=slot_id)
        for slot_id in slot_ids
    ]
    db.add_all(votes)

    participant.has_responded = True
    participant.responded_at = datetime.now(UTC)
    db.flush()
    db.expire(participant, ["votes"])
    return votes


def confirm_schedule(
    db: Session,
    schedule_id: UUID,
    slot: InterviewTimeSlot,
    actor_id: UUID | None,
) -> bool:
    """Move a collecting schedule to ``scheduled`` on ``slot``.

    Compare-and-set on status: returns False (and writes nothing) when the
    schedule is not in ``collecting`` any more.
    """
    updated = (
        db.query(InterviewSchedule)
        .filter(
            InterviewSchedule.id == schedule_id,
            InterviewSchedule.status == ScheduleStatus.COLLECTING,
        )
        .update(
            {
                InterviewSchedule.status: ScheduleStatus.SCHEDULED,
                InterviewSchedule.scheduled_start_time: slot.start_time,
                InterviewSchedule.scheduled_end_time: slot.end_time,
                InterviewSchedule.confirmed_at: datetime.now(UTC),
                InterviewSchedule.confirmed_by_user_id: actor_id,
                InterviewSchedule.updated_at: datetime.now(UTC),
            },
            synchronize_session="fetch",
        )
    )
    db.flush()
    return updated == 1
