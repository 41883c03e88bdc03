"""Interview scheduling request schemas."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field


class TimeRangeIn(BaseModel):
    start: datetime
    end: datetime


class ParticipantIn(BaseModel):
    name: str = Field(..., max_length=255)
    email: EmailStr
    timezone: str = Field("", max_length=64)


class ScheduleCreateRequest(BaseModel):
    application_id: str
    job_id: str
    interview_duration_minutes: int
    timezone: str = Field("UTC", max_length=64)
    time_ranges: list[TimeRangeIn] = Field(default_factory=list)
    participants: list[ParticipantIn] = Field(default_factory=list)

    # Email labels
    candidate_name: str = Field("", max_length=255)
    job_title: str = Field("", max_length=255)
    company_name: str = Field("", max_length=255)
    recruiter_name: str = Field("", max_length=255)


class AvailabilitySubmitRequest(BaseModel):
    slot_ids: list[str] = Field(default_factory=list)


class ConfirmSlotRequest(BaseModel):
    slot_id: str
