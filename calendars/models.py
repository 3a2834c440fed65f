"""
calendars/models.py -- Domain dataclasses for calendars, events and shares.

These are pure data containers with zero logic. Access rules (ownership,
sharing) live in calendars/service.py; persistence lives in calendars/store.py.

Event start/end are timezone-aware UTC datetimes once they leave the store.
id is None before the record is written to the database.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Calendar:
    """A named calendar owned by exactly one identity (owner_email)."""

    owner_email: str
    name: str
    description: str = ""
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert


@dataclass
class Event:
    """A time-boxed entry on one calendar. end is strictly after start."""

    calendar_id: int
    title: str
    start: datetime
    end: datetime
    description: str = ""
    created_by: str = ""  # email of the identity that created the event
    id: Optional[int] = None
    created_at: str = ""


@dataclass
class CalendarShare:
    """Grants member_email read/write access to another identity's calendar."""

    calendar_id: int
    member_email: str
    created_at: str = ""
    id: Optional[int] = None


@dataclass
class NewCalendarData:
    """Payload for CalendarService.create_calendar."""

    name: str
    description: str = ""


@dataclass
class NewEventData:
    """Payload for CalendarService.create_event."""

    calendar_id: int
    title: str
    start: datetime
    end: datetime
    description: str = ""
