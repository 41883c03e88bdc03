"""Tests for HTTP routes using FastAPI TestClient against an in-memory database."""

import json
import uuid
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.auth.service import create_user


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.notify_participant.return_value = True
    notifier.notify_confirmation.return_value = 1
    return notifier


def _build_client(session_factory, options, notifier, user=None):
    from src.database import get_db
    from src.dependencies import get_current_user, get_notifier, get_session_factory
    from src.main import create_app
    from src.rate_limit import limiter
    from src.scheduling.routes import get_scheduling_options

    @asynccontextmanager
    async def _test_lifespan(app):
        app.state.notifier = notifier
        yield

    def _db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    limiter.reset()
    with patch("src.main.lifespan", _test_lifespan), patch("src.main.settings") as mock_settings:
        mock_settings.trusted_hosts_list = ["*"]
        mock_settings.cors_origins_list = ["*"]
        mock_settings.cors_allow_credentials = True
        mock_settings.secret_key = "test-secret"
        app = create_app()
    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_scheduling_options] = lambda: options
    if user is not None:
        app.dependency_overrides[get_current_user] = lambda: user
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def app_client(session_factory, options, notifier):
    """Unauthenticated client."""
    with _build_client(session_factory, options, notifier) as client:
        yield client


@pytest.fixture
def auth_client(session_factory, options, notifier, test_user):
    """Client with the recruiter dependency resolved to ``test_user``."""
    with _build_client(session_factory, options, notifier, user=test_user) as client:
        yield client


def _create_body(**overrides):
    body = {
        "application_id": str(uuid.uuid4()),
        "job_id": str(uuid.uuid4()),
        "interview_duration_minutes": 30,
        "timezone": "UTC",
        "time_ranges": [{"start": "2025-01-01T09:00:00Z", "end": "2025-01-01T10:00:00Z"}],
        "participants": [
            {"name": "Alice", "email": "alice@example.com"},
            {"name": "Bob", "email": "bob@example.com"},
        ],
        "candidate_name": "Casey Candidate",
        "job_title": "Backend Engineer",
    }
    body.update(overrides)
    return body


class TestHealthEndpoint:
    def test_health_returns_ok(self, app_client):
        response = app_client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["db"] == "ok"

    def test_security_headers(self, app_client):
        response = app_client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestAuthRoutes:
    def test_recruiter_endpoints_require_login(self, app_client):
        response = app_client.get(f"/api/v1/interview-schedules/{uuid.uuid4()}")
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required"}

    def test_invalid_login(self, app_client):
        response = app_client.post("/login", json={"email": "nobody@example.com", "password": "x"})
        assert response.status_code == 401

    def test_login_then_create(self, app_client, db_session):
        create_user(db_session, "hr@example.com", "s3cret", full_name="Hana HR")
        db_session.commit()

        response = app_client.post("/login", json={"email": "hr@example.com", "password": "s3cret"})
        assert response.status_code == 200
        assert app_client.get("/me").json()["email"] == "hr@example.com"

        response = app_client.post("/api/v1/interview-schedules", json=_create_body())
        assert response.status_code == 201

        app_client.post("/logout")
        assert app_client.get("/me").status_code == 401


class TestCreateSchedule:
    def test_creates_and_sends_invitations(self, auth_client, notifier):
        response = auth_client.post("/api/v1/interview-schedules", json=_create_body())

        assert response.status_code == 201
        data = response.json()
        assert data["schedule"]["status"] == "collecting"
        assert len(data["time_slots"]) == 2
        assert [p["name"] for p in data["participants"]] == ["Alice", "Bob"]
        assert data["participants"][0]["voting_link"].startswith("https://jobs.example.com/interview-vote/")
        assert notifier.notify_participant.call_count == 2

    def test_validation_error(self, auth_client, notifier):
        response = auth_client.post("/api/v1/interview-schedules", json=_create_body(interview_duration_minutes=0))
        assert response.status_code == 400
        data = response.json()
        assert data["kind"] == "validation"
        assert data["field"] == "interview_duration_minutes"
        notifier.notify_participant.assert_not_called()

    def test_ranges_too_short(self, auth_client):
        body = _create_body(time_ranges=[{"start": "2025-01-01T09:00:00Z", "end": "2025-01-01T09:10:00Z"}])
        response = auth_client.post("/api/v1/interview-schedules", json=body)
        assert response.status_code == 400

    def test_invalid_email_rejected_by_schema(self, auth_client):
        body = _create_body(participants=[{"name": "Alice", "email": "not-an-email"}])
        assert auth_client.post("/api/v1/interview-schedules", json=body).status_code == 422


class TestSchedulingFlow:
    def _create(self, client):
        response = client.post("/api/v1/interview-schedules", json=_create_body())
        assert response.status_code == 201
        return response.json()

    def test_vote_page_by_token(self, auth_client):
        created = self._create(auth_client)
        token = created["participants"][0]["voting_link"].rsplit("/", 1)[-1]

        response = auth_client.get(f"/api/v1/interview-vote/{token}")
        assert response.status_code == 200
        data = response.json()
        assert data["participant"]["name"] == "Alice"
        assert data["participant"]["has_responded"] is False
        assert [s["id"] for s in data["time_slots"]] == [s["id"] for s in created["time_slots"]]

    def test_unknown_token(self, app_client):
        response = app_client.get("/api/v1/interview-vote/not-a-real-token")
        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    def test_vote_rank_confirm(self, auth_client, notifier):
        created = self._create(auth_client)
        schedule_id = created["schedule"]["id"]
        early, late = (s["id"] for s in created["time_slots"])
        alice_token, bob_token = (p["voting_link"].rsplit("/", 1)[-1] for p in created["participants"])

        response = auth_client.post(f"/api/v1/interview-vote/{alice_token}", json={"slot_ids": [early, late]})
        assert response.status_code == 200
        assert response.json()["has_responded"] is True
        auth_client.post(f"/api/v1/interview-vote/{bob_token}", json={"slot_ids": [late]})

        view = auth_client.get(f"/api/v1/interview-schedules/{schedule_id}").json()
        availability = view["availability"]
        assert availability["state"] == "perfect_match"
        assert availability["best_match"]["id"] == late
        assert availability["best_match"]["match_percentage"] == 100.0
        assert availability["perfect_match_ids"] == [late]
        assert [r["vote_count"] for r in availability["ranked_slots"]] == [2, 1]

        by_app = auth_client.get(f"/api/v1/applications/{created['schedule']['application_id']}/interview-schedule")
        assert by_app.json()["schedule"]["id"] == schedule_id

        response = auth_client.post(f"/api/v1/interview-schedules/{schedule_id}/confirm", json={"slot_id": late})
        assert response.status_code == 200
        assert response.json()["schedule"]["status"] == "scheduled"
        assert notifier.notify_confirmation.call_count == 2

        response = auth_client.post(f"/api/v1/interview-schedules/{schedule_id}/confirm", json={"slot_id": early})
        assert response.status_code == 409
        assert response.json()["kind"] == "conflict"

        response = auth_client.post(f"/api/v1/interview-vote/{alice_token}", json={"slot_ids": [early]})
        assert response.status_code == 409

    def test_foreign_slot_vote_rejected(self, auth_client):
        first = self._create(auth_client)
        second = self._create(auth_client)
        token = first["participants"][0]["voting_link"].rsplit("/", 1)[-1]

        response = auth_client.post(
            f"/api/v1/interview-vote/{token}", json={"slot_ids": [second["time_slots"][0]["id"]]}
        )
        assert response.status_code == 404

    def test_unknown_schedule(self, auth_client):
        assert auth_client.get(f"/api/v1/interview-schedules/{uuid.uuid4()}").status_code == 404


class TestRateLimitHandler:
    def _exceeded(self, window_seconds):
        from slowapi.errors import RateLimitExceeded

        item = MagicMock()
        item.get_expiry.return_value = window_seconds
        return RateLimitExceeded(SimpleNamespace(limit=item, error_message="too many votes"))

    def test_retry_after_follows_limit_window(self):
        from src.main import _rate_limit_handler

        response = _rate_limit_handler(MagicMock(), self._exceeded(3600))
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "3600"
        assert json.loads(response.body)["retry_after"] == 3600

    def test_per_minute_limit(self):
        from src.main import _rate_limit_handler

        response = _rate_limit_handler(MagicMock(), self._exceeded(60))
        assert response.headers["Retry-After"] == "60"
