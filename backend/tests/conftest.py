"""Shared test fixtures."""

import uuid
from datetime import UTC, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.audit.models import AuditLog
from src.auth.models import User
from src.database.base import Base
from src.notifications.models import NotificationLog
from src.scheduling.models import AvailabilityVote, InterviewParticipant, InterviewSchedule, InterviewTimeSlot
from src.scheduling.schemas import ScheduleCreateRequest
from src.scheduling.service import SchedulingOptions, create_interview_schedule

# Models must be imported so Base.metadata.create_all() sees all tables.
_ALL_MODELS = [
    AuditLog,
    NotificationLog,
    InterviewSchedule,
    InterviewTimeSlot,
    InterviewParticipant,
    AvailabilityVote,
]


@pytest.fixture
def engine():
    """In-memory SQLite engine shared by every session of one test.

    Note: SQLite ignores SELECT ... FOR UPDATE and hands datetimes back
    naive, but is enough for service and route logic.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def test_user(db_session):
    """Create a test recruiter."""
    user = User(
        id=uuid.uuid4(),
        email="recruiter@example.com",
        password_hash="$2b$12$fakehash",
        full_name="Rita Recruiter",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def options(sleeps):
    """Delivery options that never actually sleep; sleeps are recorded instead."""
    return SchedulingOptions(
        vote_base_url="https://jobs.example.com",
        max_attempts=2,
        retry_delay_seconds=2.0,
        participant_delay_seconds=2.0,
        sleep=sleeps.append,
    )


def make_create_request(**overrides) -> ScheduleCreateRequest:
    """A valid create payload: one 09:00-10:00 range, 30 minute slots, two participants."""
    data = {
        "application_id": str(uuid.uuid4()),
        "job_id": str(uuid.uuid4()),
        "interview_duration_minutes": 30,
        "timezone": "UTC",
        "time_ranges": [
            {"start": datetime(2025, 1, 1, 9, 0, tzinfo=UTC), "end": datetime(2025, 1, 1, 10, 0, tzinfo=UTC)},
        ],
        "participants": [
            {"name": "Alice", "email": "alice@example.com"},
            {"name": "Bob", "email": "bob@example.com"},
        ],
        "candidate_name": "Casey Candidate",
        "job_title": "Backend Engineer",
        "company_name": "Acme",
    }
    data.update(overrides)
    return ScheduleCreateRequest(**data)


@pytest.fixture
def create_request():
    return make_create_request


@pytest.fixture
def test_schedule(db_session, test_user):
    """A committed collecting schedule with 2 slots and 2 participants (Alice, Bob)."""
    schedule = create_interview_schedule(db_session, make_create_request(), created_by_user_id=test_user.id)
    db_session.commit()
    return schedule
