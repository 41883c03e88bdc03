"""Interview scheduling workflow: create, notify, collect votes, confirm.

Schedules move one way, ``collecting`` -> ``scheduled``. Service functions
flush but never commit; routes commit once per request so every write of an
operation lands in a single transaction.
"""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..notifications.service import (
    CONFIRMATION,
    INVITATION,
    Notifier,
    confirmation_subject,
    deliver_with_retry,
    invitation_subject,
    record_notification,
)
from . import repository
from .errors import ScheduleConflictError, ScheduleNotFoundError, ScheduleValidationError
from .models import InterviewParticipant, InterviewSchedule
from .schemas import ScheduleCreateRequest
from .slots import TimeRange, generate_slots

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchedulingOptions:
    """Delivery policy passed explicitly into the workflow."""

    vote_base_url: str
    max_attempts: int = 2
    retry_delay_seconds: float = 2.0
    participant_delay_seconds: float = 2.0
    sleep: Callable[[float], None] = time.sleep


def options_from_settings() -> SchedulingOptions:
    return SchedulingOptions(
        vote_base_url=settings.public_base_url,
        max_attempts=settings.notification_max_attempts,
        retry_delay_seconds=settings.notification_retry_delay_seconds,
        participant_delay_seconds=settings.notification_participant_delay_seconds,
    )


def voting_link(base_url: str, vote_token: str) -> str:
    return f"{base_url.rstrip('/')}/interview-vote/{vote_token}"


def _to_uuid(value: str, field: str) -> UUID:
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        raise ScheduleValidationError(f"Invalid identifier: {value!r}", field=field) from None


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ── Create ─────────────────────────────────────────────────────────────


def _validate_create(payload: ScheduleCreateRequest) -> tuple[UUID, UUID, list[TimeRange], list[dict]]:
    application_id = _to_uuid(payload.application_id, "application_id")
    job_id = _to_uuid(payload.job_id, "job_id")

    if payload.interview_duration_minutes <= 0:
        raise ScheduleValidationError("Interview duration must be a positive number of minutes", "interview_duration_minutes")
    if not payload.timezone.strip():
        raise ScheduleValidationError("Timezone is required", "timezone")

    if not payload.time_ranges:
        raise ScheduleValidationError("At least one time range is required", "time_ranges")
    ranges = []
    for idx, r in enumerate(payload.time_ranges):
        start, end = _as_utc(r.start), _as_utc(r.end)
        if end <= start:
            raise ScheduleValidationError("Time range must end after it starts", f"time_ranges[{idx}]")
        ranges.append(TimeRange(start, end))

    if not payload.participants:
        raise ScheduleValidationError("At least one participant is required", "participants")
    invites = []
    for idx, p in enumerate(payload.participants):
        name = p.name.strip()
        email = str(p.email).strip()
        if not name:
            raise ScheduleValidationError("Participant name is required", f"participants[{idx}].name")
        if not email or "@" not in email:
            raise ScheduleValidationError("Participant email is required", f"participants[{idx}].email")
        invites.append({"name": name, "email": email, "timezone": p.timezone.strip() or payload.timezone})

    return application_id, job_id, ranges, invites


def create_interview_schedule(
    db: Session,
    payload: ScheduleCreateRequest,
    *,
    created_by_user_id: UUID | None,
) -> InterviewSchedule:
    """Create the schedule, its slots and its participants.

    Everything is validated (and the slots generated) before the first write.
    Invitations are sent separately by ``send_invitations`` once the caller
    has committed.
    """
    application_id, job_id, ranges, invites = _validate_create(payload)

    windows = generate_slots(ranges, payload.interview_duration_minutes)
    if not windows:
        raise ScheduleValidationError(
            f"Time ranges are too short for a {payload.interview_duration_minutes}-minute interview",
            "time_ranges",
        )

    schedule = repository.create_schedule(
        db,
        application_id=application_id,
        job_id=job_id,
        created_by_user_id=created_by_user_id,
        duration_minutes=payload.interview_duration_minutes,
        timezone=payload.timezone.strip(),
        candidate_name=payload.candidate_name,
        job_title=payload.job_title,
        company_name=payload.company_name,
        recruiter_name=payload.recruiter_name,
    )
    slots = repository.bulk_insert_slots(db, schedule, windows)
    participants = repository.bulk_insert_participants(db, schedule, invites)

    logger.info(
        "Created interview schedule %s for application %s: %d ranges, %d slots, %d participants",
        schedule.id, application_id, len(ranges), len(slots), len(participants),
    )
    return schedule


def send_invitations(
    db: Session,
    notifier: Notifier,
    schedule_id: UUID,
    options: SchedulingOptions,
) -> dict:
    """Invite every participant of a schedule, one at a time.

    Each delivery is retried up to ``options.max_attempts`` times and its
    outcome recorded; a failure never stops the remaining participants.
    """
    schedule = repository.get_schedule_with_slots_and_votes(db, schedule_id)
    if schedule is None:
        raise ScheduleNotFoundError("Interview schedule not found")

    subject = invitation_subject(schedule)
    participants = list(schedule.participants)
    sent = failed = 0

    for idx, participant in enumerate(participants):
        link = voting_link(options.vote_base_url, participant.vote_token)
        delivered, attempts = deliver_with_retry(
            lambda p=participant, url=link: notifier.notify_participant(p, schedule, url),
            max_attempts=options.max_attempts,
            delay_seconds=options.retry_delay_seconds,
            sleep=options.sleep,
            label=participant.email,
        )
        record_notification(
            db,
            schedule_id=schedule.id,
            participant_id=participant.id,
            notification_type=INVITATION,
            recipient=participant.email,
            subject=subject,
            delivered=delivered,
            attempts=attempts,
        )
        if delivered:
            sent += 1
        else:
            failed += 1

        # Throttle between participants to stay under provider rate limits
        if idx < len(participants) - 1:
            options.sleep(options.participant_delay_seconds)

    db.flush()

    if failed and not sent:
        logger.warning("All %d invitations failed for schedule %s", failed, schedule.id)
    elif failed:
        logger.warning("%d/%d invitations failed for schedule %s", failed, len(participants), schedule.id)
    else:
        logger.info("Sent %d invitations for schedule %s", sent, schedule.id)
    return {"sent": sent, "failed": failed}


# ── Read ───────────────────────────────────────────────────────────────


def get_schedule_for_recruiter(db: Session, schedule_id: str, user_id: UUID | None) -> InterviewSchedule:
    """Load a schedule with slots, participants and votes, owned by ``user_id``."""
    uid = _to_uuid(schedule_id, "schedule_id")
    schedule = repository.get_schedule_with_slots_and_votes(db, uid)
    if schedule is None or schedule.created_by_user_id != user_id:
        raise ScheduleNotFoundError("Interview schedule not found")
    return schedule


def get_application_schedule(db: Session, application_id: str, user_id: UUID | None) -> InterviewSchedule:
    uid = _to_uuid(application_id, "application_id")
    schedule = repository.get_latest_schedule_for_application(db, uid)
    if schedule is None or schedule.created_by_user_id != user_id:
        raise ScheduleNotFoundError("No interview schedule for this application")
    return schedule


def get_participant_for_token(db: Session, vote_token: str) -> InterviewParticipant:
    participant = repository.get_participant_by_token(db, vote_token)
    if participant is None:
        raise ScheduleNotFoundError("This interview scheduling link is invalid or has expired")
    return participant


# ── Vote ───────────────────────────────────────────────────────────────


def submit_availability(db: Session, vote_token: str, slot_ids: Sequence[str]) -> InterviewParticipant:
    """Replace the token holder's votes with ``slot_ids``.

    The token is the only credential. Every id must belong to the
    participant's own schedule; duplicates are collapsed. An empty list is a
    valid answer ("none of these work").
    """
    participant = repository.get_participant_by_token(db, vote_token, for_update=True)
    if participant is None:
        raise ScheduleNotFoundError("This interview scheduling link is invalid or has expired")

    schedule = participant.schedule
    if schedule.is_scheduled:
        raise ScheduleConflictError("This interview has already been scheduled")

    chosen = list(dict.fromkeys(_to_uuid(s, "slot_ids") for s in slot_ids))
    own_slots = repository.get_slot_ids_for_schedule(db, schedule.id)
    foreign = [s for s in chosen if s not in own_slots]
    if foreign:
        raise ScheduleNotFoundError(f"Time slot {foreign[0]} does not belong to this interview schedule")

    repository.replace_participant_votes(db, participant, chosen)
    logger.info(
        "Participant %s submitted %d slot(s) for schedule %s",
        participant.id, len(chosen), schedule.id,
    )
    return participant


# ── Confirm ────────────────────────────────────────────────────────────


def confirm_interview_slot(
    db: Session,
    schedule_id: str,
    slot_id: str,
    *,
    user_id: UUID | None,
) -> InterviewSchedule:
    """Lock the schedule on one of its slots.

    Any slot of the schedule may be chosen; the ranking is only advisory.
    A schedule that is already ``scheduled`` raises a conflict and keeps its
    original confirmation.
    """
    schedule = get_schedule_for_recruiter(db, schedule_id, user_id)
    slot = repository.get_slot(db, _to_uuid(slot_id, "slot_id"))
    if slot is None or slot.interview_schedule_id != schedule.id:
        raise ScheduleNotFoundError("Time slot not found for this interview schedule")

    if schedule.is_scheduled or not repository.confirm_schedule(db, schedule.id, slot, user_id):
        logger.info("Confirm rejected: schedule %s is already scheduled", schedule.id)
        raise ScheduleConflictError("This interview has already been scheduled")

    db.refresh(schedule)
    logger.info(
        "Schedule %s confirmed by %s for %s - %s",
        schedule.id, user_id, schedule.scheduled_start_time, schedule.scheduled_end_time,
    )
    return schedule


def send_confirmations(
    db: Session,
    notifier: Notifier,
    schedule_id: UUID,
    options: SchedulingOptions,
) -> dict:
    """Tell every participant the confirmed time. Best-effort, like invitations."""
    schedule = repository.get_schedule_with_slots_and_votes(db, schedule_id)
    if schedule is None:
        raise ScheduleNotFoundError("Interview schedule not found")
    if not schedule.is_scheduled:
        raise ScheduleConflictError("Interview schedule has not been confirmed yet")

    subject = confirmation_subject(schedule)
    sent = failed = 0
    for participant in schedule.participants:
        delivered, attempts = deliver_with_retry(
            lambda p=participant: notifier.notify_confirmation(schedule, [p]) == 1,
            max_attempts=options.max_attempts,
            delay_seconds=options.retry_delay_seconds,
            sleep=options.sleep,
            label=participant.email,
        )
        record_notification(
            db,
            schedule_id=schedule.id,
            participant_id=participant.id,
            notification_type=CONFIRMATION,
            recipient=participant.email,
            subject=subject,
            delivered=delivered,
            attempts=attempts,
        )
        if delivered:
            sent += 1
        else:
            failed += 1

    db.flush()
    logger.info("Confirmation emails for schedule %s: %d sent, %d failed", schedule.id, sent, failed)
    return {"sent": sent, "failed": failed}
