"""
API request and response models for CollabCal REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
calendars/models.py, which own the internal domain representation. Route
handlers map between the two.

Malformed input (missing fields, wrong types, oversized strings, inverted time
ranges) is rejected here with HTTP 422 before any service call.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from auth.models import User
from auth.tokens import MAX_PASSWORD_BYTES, fits_bcrypt
from calendars.models import Calendar, CalendarShare, Event
from calendars.store import to_utc


def _stripped(value: str) -> str:
    # Identity headers are stripped, so the stored email must be too.
    return value.strip()


def _within_bcrypt_limit(value: str) -> str:
    if not fits_bcrypt(value):
        raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth -- requests
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    """Request body for POST /api/v1/auth/users.

    Blank and weak values are NOT rejected here: the credential rules run in
    the service so the caller gets the rule-specific message back.
    """

    email: str = Field(max_length=320)
    name: str = Field(max_length=255)
    password: str = Field(max_length=MAX_PASSWORD_BYTES)
    confirm_password: str = Field(max_length=MAX_PASSWORD_BYTES)

    @field_validator("email")
    @classmethod
    def strip_email(cls, value: str) -> str:
        return _stripped(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _within_bcrypt_limit(value)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("email")
    @classmethod
    def strip_email(cls, value: str) -> str:
        return _stripped(value)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        return _within_bcrypt_limit(value)


class NameChange(BaseModel):
    """Request body for PATCH /api/v1/auth/me/name."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Auth -- responses
# ---------------------------------------------------------------------------


class CreateUserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    email: str
    message: str


class LoginResponse(BaseModel):
    """Successful login. authentication is the session token to send back in
    the Authentication header; it is shown once and never stored raw."""

    model_config = ConfigDict(frozen=True)

    authentication: str
    email: str
    expires_in: int


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class LogoutAllResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    revoked: int


class MeResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    name: str
    created_at: str
    last_login: Optional[str]
    active_sessions: int

    @classmethod
    def from_user(cls, user: User, active_sessions: int) -> "MeResponse":
        return cls(
            user_id=user.id,
            email=user.email,
            name=user.name,
            created_at=user.created_at or "",
            last_login=user.last_login,
            active_sessions=active_sessions,
        )


# ---------------------------------------------------------------------------
# Calendars
# ---------------------------------------------------------------------------


class CalendarCreate(BaseModel):
    """Request body for POST /api/v1/calendars."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=2000)


class CalendarResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str
    owner_email: str
    created_at: str

    @classmethod
    def from_calendar(cls, calendar: Calendar) -> "CalendarResponse":
        return cls(
            id=calendar.id,
            name=calendar.name,
            description=calendar.description,
            owner_email=calendar.owner_email,
            created_at=calendar.created_at,
        )


class ShareCreate(BaseModel):
    """Request body for POST /api/v1/calendars/{calendar_id}/shares."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=320)


class ShareResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    calendar_id: int
    member_email: str
    created_at: str

    @classmethod
    def from_share(cls, share: CalendarShare) -> "ShareResponse":
        return cls(calendar_id=share.calendar_id, member_email=share.member_email, created_at=share.created_at)


class ShareResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    calendar_id: int
    member_email: str
    created: bool


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventCreate(BaseModel):
    """Request body for POST /api/v1/calendars/{calendar_id}/events.

    Naive datetimes are interpreted as UTC.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=1, max_length=255)
    start: datetime
    end: datetime
    description: str = Field(default="", max_length=2000)

    @model_validator(mode="after")
    def check_range(self) -> "EventCreate":
        if to_utc(self.end) <= to_utc(self.start):
            raise ValueError("end must be after start")
        return self


class EventResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    calendar_id: int
    title: str
    start: datetime
    end: datetime
    description: str
    created_by: str

    @classmethod
    def from_event(cls, event: Event) -> "EventResponse":
        return cls(
            id=event.id,
            calendar_id=event.calendar_id,
            title=event.title,
            start=event.start,
            end=event.end,
            description=event.description,
            created_by=event.created_by,
        )
