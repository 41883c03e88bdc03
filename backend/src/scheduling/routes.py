"""Interview scheduling JSON API routes.

Recruiter endpoints need a logged-in session; the ``/interview-vote`` pair is
public and authenticated only by the vote token in the URL.
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from ..audit.service import audit
from ..auth.models import User
from ..config import settings
from ..database import get_db
from ..dependencies import get_current_user, get_notifier, get_session_factory
from ..notifications.service import Notifier
from ..rate_limit import limiter
from .models import InterviewParticipant, InterviewSchedule
from .ranking import availability_matrix, match_percentage, summarize_availability
from .schemas import AvailabilitySubmitRequest, ConfirmSlotRequest, ScheduleCreateRequest
from .service import (
    SchedulingOptions,
    confirm_interview_slot,
    create_interview_schedule,
    get_application_schedule,
    get_participant_for_token,
    get_schedule_for_recruiter,
    options_from_settings,
    send_confirmations,
    send_invitations,
    submit_availability,
    voting_link,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["interview-scheduling"])


def get_scheduling_options() -> SchedulingOptions:
    return options_from_settings()


# ── Serialization ──────────────────────────────────────────────────────


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _slot_payload(slot) -> dict:
    return {"id": str(slot.id), "start_time": _iso(slot.start_time), "end_time": _iso(slot.end_time)}


def _schedule_payload(schedule: InterviewSchedule) -> dict:
    return {
        "id": str(schedule.id),
        "application_id": str(schedule.application_id),
        "job_id": str(schedule.job_id),
        "status": str(schedule.status),
        "interview_duration_minutes": schedule.interview_duration_minutes,
        "timezone": schedule.timezone,
        "candidate_name": schedule.candidate_name,
        "job_title": schedule.job_title,
        "company_name": schedule.company_name,
        "scheduled_start_time": _iso(schedule.scheduled_start_time),
        "scheduled_end_time": _iso(schedule.scheduled_end_time),
        "confirmed_at": _iso(schedule.confirmed_at),
        "created_at": _iso(schedule.created_at),
    }


def _participant_payload(participant: InterviewParticipant, base_url: str) -> dict:
    return {
        "id": str(participant.id),
        "name": participant.name,
        "email": participant.email,
        "timezone": participant.timezone,
        "has_responded": participant.has_responded,
        "responded_at": _iso(participant.responded_at),
        "slot_ids": [str(v.interview_time_slot_id) for v in participant.votes],
        "voting_link": voting_link(base_url, participant.vote_token),
    }


def _recruiter_view(schedule: InterviewSchedule, base_url: str) -> dict:
    slots = list(schedule.time_slots)
    participants = list(schedule.participants)
    summary = summarize_availability(slots, participants)
    total = summary["total_participants"]

    def ranked_payload(r):
        return {
            **_slot_payload(r.slot),
            "vote_count": r.vote_count,
            "voters": r.voters,
            "match_percentage": match_percentage(r.vote_count, total),
        }

    best = summary["best_match"]
    return {
        "schedule": _schedule_payload(schedule),
        "time_slots": [_slot_payload(s) for s in slots],
        "participants": [_participant_payload(p, base_url) for p in participants],
        "availability": {
            "total_participants": total,
            "responded": summary["responded"],
            "pending": summary["pending"],
            "all_responded": summary["all_responded"],
            "state": str(summary["state"]),
            "ranked_slots": [ranked_payload(r) for r in summary["ranked"]],
            "best_match": ranked_payload(best) if best else None,
            "perfect_match_ids": [str(r.id) for r in summary["perfect_matches"]],
            "matrix": availability_matrix(slots, participants),
        },
    }


# ── Background delivery ────────────────────────────────────────────────


def _deliver_in_background(session_factory: sessionmaker, job, notifier: Notifier, schedule_id: UUID, options):
    """Run a delivery job with its own session once the request has committed."""
    bg_db = session_factory()
    try:
        job(bg_db, notifier, schedule_id, options)
        bg_db.commit()
    except Exception:
        bg_db.rollback()
        logger.exception("Notification delivery failed for schedule %s", schedule_id)
    finally:
        bg_db.close()


# ── Recruiter endpoints ────────────────────────────────────────────────


@router.post("/interview-schedules")
def create_schedule(
    request: Request,
    payload: ScheduleCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
    session_factory: sessionmaker = Depends(get_session_factory),
    options: SchedulingOptions = Depends(get_scheduling_options),
):
    if not payload.recruiter_name and user.full_name:
        payload.recruiter_name = user.full_name

    schedule = create_interview_schedule(db, payload, created_by_user_id=user.id)
    audit(
        db, request, "schedule_create",
        f"application={schedule.application_id}, slots={len(schedule.time_slots)}, "
        f"participants={len(schedule.participants)}",
        user_id=user.id, schedule_id=schedule.id,
    )
    db.commit()

    background_tasks.add_task(
        _deliver_in_background, session_factory, send_invitations, notifier, schedule.id, options
    )

    return JSONResponse(
        {
            "ok": True,
            "schedule": _schedule_payload(schedule),
            "time_slots": [_slot_payload(s) for s in schedule.time_slots],
            "participants": [_participant_payload(p, options.vote_base_url) for p in schedule.participants],
        },
        status_code=201,
    )


@router.get("/interview-schedules/{schedule_id}")
def get_schedule(
    schedule_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    options: SchedulingOptions = Depends(get_scheduling_options),
):
    schedule = get_schedule_for_recruiter(db, schedule_id, user.id)
    return JSONResponse(_recruiter_view(schedule, options.vote_base_url))


@router.get("/applications/{application_id}/interview-schedule")
def get_schedule_for_application(
    application_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    options: SchedulingOptions = Depends(get_scheduling_options),
):
    schedule = get_application_schedule(db, application_id, user.id)
    return JSONResponse(_recruiter_view(schedule, options.vote_base_url))


@router.post("/interview-schedules/{schedule_id}/confirm")
def confirm_slot(
    request: Request,
    schedule_id: str,
    payload: ConfirmSlotRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    notifier: Notifier = Depends(get_notifier),
    session_factory: sessionmaker = Depends(get_session_factory),
    options: SchedulingOptions = Depends(get_scheduling_options),
):
    schedule = confirm_interview_slot(db, schedule_id, payload.slot_id, user_id=user.id)
    audit(db, request, "schedule_confirm", f"slot={payload.slot_id}", user_id=user.id, schedule_id=schedule.id)
    db.commit()

    background_tasks.add_task(
        _deliver_in_background, session_factory, send_confirmations, notifier, schedule.id, options
    )
    return JSONResponse({"ok": True, "schedule": _schedule_payload(schedule)})


# ── Public vote endpoints ──────────────────────────────────────────────


@router.get("/interview-vote/{vote_token}")
@limiter.limit(settings.rate_limit_vote)
def get_vote_page(
    request: Request,
    vote_token: str,
    db: Session = Depends(get_db),
):
    participant = get_participant_for_token(db, vote_token)
    schedule = participant.schedule
    return JSONResponse(
        {
            "participant": {
                "name": participant.name,
                "timezone": participant.timezone,
                "has_responded": participant.has_responded,
                "responded_at": _iso(participant.responded_at),
                "slot_ids": [str(v.interview_time_slot_id) for v in participant.votes],
            },
            "schedule": {
                "status": str(schedule.status),
                "interview_duration_minutes": schedule.interview_duration_minutes,
                "timezone": schedule.timezone,
                "candidate_name": schedule.candidate_name,
                "job_title": schedule.job_title,
                "company_name": schedule.company_name,
                "scheduled_start_time": _iso(schedule.scheduled_start_time),
                "scheduled_end_time": _iso(schedule.scheduled_end_time),
            },
            "time_slots": [_slot_payload(s) for s in schedule.time_slots],
        }
    )


@router.post("/interview-vote/{vote_token}")
@limiter.limit(settings.rate_limit_vote)
def post_vote(
    request: Request,
    vote_token: str,
    payload: AvailabilitySubmitRequest,
    db: Session = Depends(get_db),
):
    participant = submit_availability(db, vote_token, payload.slot_ids)
    audit(
        db, request, "availability_submit",
        f"participant={participant.id}, slots={len(payload.slot_ids)}",
        schedule_id=participant.interview_schedule_id,
    )
    db.commit()
    return JSONResponse(
        {
            "ok": True,
            "has_responded": participant.has_responded,
            "slot_ids": [str(v.interview_time_slot_id) for v in participant.votes],
        }
    )
