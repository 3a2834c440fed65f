"""
calendars/service.py -- Calendar and event operations behind the session gate.

Every public method takes the caller's (email, token) pair and runs it through
SessionManager.resolve() before any store call. A failed gate returns None and
nothing is read or written.

Access rule for a calendar's events: the authenticated identity must own the
calendar or appear in its share list. A calendar that does not exist and a
calendar the caller cannot see both raise NotFoundError, so ids belonging to
other users cannot be probed. Sharing is owner-only.

Layer rule: calendars/ may import from auth/ and core/, never from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime

from auth.models import User
from auth.sessions import SessionManager
from auth.store import UserStore
from calendars.models import Calendar, CalendarShare, Event, NewCalendarData, NewEventData
from calendars.store import CalendarStore, to_utc
from core.errors import ForbiddenError, InvalidRequestError, NotFoundError

logger = logging.getLogger("collabcal.calendars")


class CalendarService:
    def __init__(self, store: CalendarStore, sessions: SessionManager, users: UserStore) -> None:
        self._store = store
        self._sessions = sessions
        self._users = users

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    def create_calendar(self, email: str, token: str, data: NewCalendarData) -> Calendar | None:
        """Create a calendar owned by the authenticated identity. None if the gate fails."""
        user = self._authorize(email, token, "create_calendar")
        if user is None:
            return None
        if not data.name or not data.name.strip():
            raise InvalidRequestError("Calendar name must not be blank.")

        calendar = Calendar(owner_email=user.email, name=data.name.strip(), description=data.description or "")
        calendar.id = self._store.create_calendar(calendar)
        logger.info("Calendar %s created by user_id=%s", calendar.id, user.id)
        return self._store.get_calendar(calendar.id)

    def list_calendars(self, email: str, token: str) -> list[Calendar] | None:
        """Calendars owned by or shared with the authenticated identity."""
        user = self._authorize(email, token, "list_calendars")
        if user is None:
            return None
        return self._store.list_calendars_for(user.email)

    def share_calendar(self, email: str, token: str, calendar_id: int, member_email: str) -> bool | None:
        """Give member_email access to a calendar the caller owns.

        Returns True when a new share was recorded, False when member_email
        already had access, None when the gate fails. Raises NotFoundError for
        an invisible calendar or an unregistered member, ForbiddenError when a
        collaborator (not the owner) tries to re-share.
        """
        user = self._authorize(email, token, "share_calendar")
        if user is None:
            return None
        calendar = self._accessible_calendar(user, calendar_id)
        if calendar.owner_email != user.email:
            raise ForbiddenError("Only the calendar owner can share it.")
        if member_email == user.email:
            return False
        if self._users.get_by_email(member_email) is None:
            raise NotFoundError("User not found.")
        added = self._store.add_share(calendar_id, member_email)
        if added:
            logger.info("Calendar %s shared by user_id=%s", calendar_id, user.id)
        return added

    def list_shares(self, email: str, token: str, calendar_id: int) -> list[CalendarShare] | None:
        """Collaborators of a calendar. Visible to the owner and to every collaborator."""
        user = self._authorize(email, token, "list_shares")
        if user is None:
            return None
        self._accessible_calendar(user, calendar_id)
        return self._store.list_shares(calendar_id)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, email: str, token: str, data: NewEventData) -> Event | None:
        """Create an event on a calendar the caller owns or has been shared."""
        user = self._authorize(email, token, "create_event")
        if user is None:
            return None
        self._accessible_calendar(user, data.calendar_id)
        if not data.title or not data.title.strip():
            raise InvalidRequestError("Event title must not be blank.")
        start, end = to_utc(data.start), to_utc(data.end)
        if end <= start:
            raise InvalidRequestError("Event end must be after its start.")

        event = Event(
            calendar_id=data.calendar_id,
            title=data.title.strip(),
            start=start,
            end=end,
            description=data.description or "",
            created_by=user.email,
        )
        try:
            event.id = self._store.create_event(event)
        except LookupError as exc:
            raise NotFoundError("Calendar not found.") from exc
        logger.info("Event %s created on calendar %s by user_id=%s", event.id, data.calendar_id, user.id)
        return event

    def list_events(
        self,
        email: str,
        token: str,
        calendar_id: int,
        start: datetime,
        end: datetime,
    ) -> list[Event] | None:
        """Events on calendar_id overlapping [start, end), ordered by start."""
        user = self._authorize(email, token, "list_events")
        if user is None:
            return None
        self._accessible_calendar(user, calendar_id)
        if to_utc(end) <= to_utc(start):
            raise InvalidRequestError("Range end must be after its start.")
        return self._store.list_events(calendar_id, start, end)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _authorize(self, email: str, token: str, operation: str) -> User | None:
        user = self._sessions.resolve(email, token)
        if user is None:
            logger.info("Authorization denied for %s", operation)
        return user

    def _accessible_calendar(self, user: User, calendar_id: int) -> Calendar:
        calendar = self._store.get_calendar(calendar_id)
        if calendar is None:
            raise NotFoundError("Calendar not found.")
        if calendar.owner_email != user.email and not self._store.is_shared_with(calendar_id, user.email):
            raise NotFoundError("Calendar not found.")
        return calendar
