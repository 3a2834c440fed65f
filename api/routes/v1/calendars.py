"""
api/routes/v1/calendars.py -- Calendar, event and sharing REST endpoints.

Routes:
  POST /calendars                            -- create calendar
  GET  /calendars                            -- list owned + shared calendars
  POST /calendars/{calendar_id}/events       -- create event
  GET  /calendars/{calendar_id}/events       -- events overlapping ?start=&end=
  POST /calendars/{calendar_id}/shares       -- share with another user (owner only)
  GET  /calendars/{calendar_id}/shares       -- list collaborators

Every route reads the Email/Authentication headers and hands them to
CalendarService, which runs the session gate before any store access. A None
result from the service is the authorization failure and becomes HTTP 401.
NotFoundError / ForbiddenError / InvalidRequestError raised by the service are
mapped to 404 / 403 / 400 by the CollabCalError handler in api/main.py.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request

from api.models import (
    CalendarCreate,
    CalendarResponse,
    EventCreate,
    EventResponse,
    ShareCreate,
    ShareResponse,
    ShareResult,
)
from auth.dependencies import Identity, get_identity, unauthorized
from calendars.models import NewCalendarData, NewEventData
from calendars.service import CalendarService

router = APIRouter()


def _service(request: Request) -> CalendarService:
    return request.app.state.calendars


# ---------------------------------------------------------------------------
# Calendars
# ---------------------------------------------------------------------------


@router.post("/calendars", response_model=CalendarResponse, status_code=201)
def create_calendar(
    request: Request,
    body: CalendarCreate,
    identity: Identity = Depends(get_identity),
) -> CalendarResponse:
    """Create a calendar owned by the caller."""
    calendar = _service(request).create_calendar(
        identity.email,
        identity.token,
        NewCalendarData(name=body.name, description=body.description),
    )
    if calendar is None:
        raise unauthorized()
    return CalendarResponse.from_calendar(calendar)


@router.get("/calendars", response_model=list[CalendarResponse])
def list_calendars(request: Request, identity: Identity = Depends(get_identity)) -> list[CalendarResponse]:
    """Return every calendar the caller owns or has been shared."""
    calendars = _service(request).list_calendars(identity.email, identity.token)
    if calendars is None:
        raise unauthorized()
    return [CalendarResponse.from_calendar(c) for c in calendars]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@router.post("/calendars/{calendar_id}/events", response_model=EventResponse, status_code=201)
def create_event(
    request: Request,
    calendar_id: int,
    body: EventCreate,
    identity: Identity = Depends(get_identity),
) -> EventResponse:
    """Add an event to a calendar the caller owns or collaborates on."""
    event = _service(request).create_event(
        identity.email,
        identity.token,
        NewEventData(
            calendar_id=calendar_id,
            title=body.title,
            start=body.start,
            end=body.end,
            description=body.description,
        ),
    )
    if event is None:
        raise unauthorized()
    return EventResponse.from_event(event)


@router.get("/calendars/{calendar_id}/events", response_model=list[EventResponse])
def list_events(
    request: Request,
    calendar_id: int,
    start: datetime = Query(..., description="Range start (inclusive), ISO 8601"),
    end: datetime = Query(..., description="Range end (exclusive), ISO 8601"),
    identity: Identity = Depends(get_identity),
) -> list[EventResponse]:
    """Return events overlapping [start, end), earliest first."""
    events = _service(request).list_events(identity.email, identity.token, calendar_id, start, end)
    if events is None:
        raise unauthorized()
    return [EventResponse.from_event(e) for e in events]


# ---------------------------------------------------------------------------
# Sharing
# ---------------------------------------------------------------------------


@router.post("/calendars/{calendar_id}/shares", response_model=ShareResult)
def share_calendar(
    request: Request,
    calendar_id: int,
    body: ShareCreate,
    identity: Identity = Depends(get_identity),
) -> ShareResult:
    """Grant another registered user access to one of the caller's calendars.

    Idempotent: sharing twice returns created=false.
    """
    created = _service(request).share_calendar(identity.email, identity.token, calendar_id, body.email)
    if created is None:
        raise unauthorized()
    return ShareResult(calendar_id=calendar_id, member_email=body.email, created=created)


@router.get("/calendars/{calendar_id}/shares", response_model=list[ShareResponse])
def list_shares(
    request: Request,
    calendar_id: int,
    identity: Identity = Depends(get_identity),
) -> list[ShareResponse]:
    shares = _service(request).list_shares(identity.email, identity.token, calendar_id)
    if shares is None:
        raise unauthorized()
    return [ShareResponse.from_share(s) for s in shares]
