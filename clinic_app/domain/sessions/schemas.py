"""Session domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..scheduling.timeclock import format_clock, parse_clock
from .lifecycle import SESSION_STATUSES


def _check_status(v):
    if v is not None and v not in SESSION_STATUSES:
        raise ValueError(f"status must be one of {', '.join(SESSION_STATUSES)}")
    return v


def _normalize_time(v):
    if v is None:
        return v
    return format_clock(parse_clock(v))


class SessionDraft(BaseModel):
    """One session to insert; order_id is attached by the server"""

    model_config = ConfigDict(extra="ignore")

    session_number: Optional[int] = Field(default=None, ge=1)
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    status: str = "scheduled"
    attended_date: Optional[date] = None
    notes: Optional[str] = None
    expires_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)

    @field_validator("scheduled_time")
    @classmethod
    def validate_time(cls, v):
        return _normalize_time(v)


class SessionBulkCreate(BaseModel):
    sessions: Optional[list[SessionDraft]] = None


class SessionFieldsUpdate(BaseModel):
    """Whitelisted fields of a single-session patch"""

    model_config = ConfigDict(extra="forbid")

    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    status: Optional[str] = None
    attended_date: Optional[date] = None
    notes: Optional[str] = None
    expires_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        # Omitting status leaves it unchanged; an explicit null is never a status
        if v is None:
            raise ValueError("status cannot be null")
        return _check_status(v)

    @field_validator("scheduled_time")
    @classmethod
    def validate_time(cls, v):
        return _normalize_time(v)


class SessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: str
    session_number: int
    scheduled_date: Optional[date] = None
    scheduled_time: Optional[str] = None
    status: str
    attended_date: Optional[date] = None
    notes: Optional[str] = None
    expires_at: Optional[datetime] = None


class AutoCompleteRequest(BaseModel):
    dryRun: bool = False
    maxAgeDays: Optional[int] = Field(default=None, ge=0)


class AutoCompleteResult(BaseModel):
    updated: int
    skipped: int
    errors: list[str]
