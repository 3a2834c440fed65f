"""
calendars/store.py -- SQLAlchemy-backed persistence for calendars, events and shares.

Uses SQLAlchemy Core (not ORM) so the dataclasses in calendars/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change.

Pattern: Repository + Data Mapper. CalendarStore is the repository; the
_row_to_* functions are the mappers. The service layer never touches SQL.

Security: all queries use bound parameters. No f-strings in SQL.

Time storage: event start/end are normalized to UTC and written as ISO-8601
with fixed microsecond precision, so the range query can compare strings.
Naive datetimes are treated as UTC.

Usage:
    store = CalendarStore()                               # SQLite default
    store = CalendarStore("postgresql://user:pw@host/db") # PostgreSQL
    cal_id = store.create_calendar(Calendar(owner_email="a@x.com", name="Work"))
    store.create_event(Event(calendar_id=cal_id, title="Standup", start=..., end=...))
    events = store.list_events(cal_id, range_start, range_end)
    store.close()
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, UniqueConstraint, select, text
from sqlalchemy.exc import IntegrityError

from calendars.models import Calendar, CalendarShare, Event
from core.database import make_engine, store_errors

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'collabcal_calendars.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_calendars = Table(
    "calendars",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_email", String(320), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("created_at", String(32), nullable=False),
)

_events = Table(
    "events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("calendar_id", Integer, nullable=False, index=True),
    Column("title", String(255), nullable=False),
    Column("start", String(32), nullable=False),
    Column("end", String(32), nullable=False),
    Column("description", Text, nullable=False, server_default=""),
    Column("created_by", String(320), nullable=False),
    Column("created_at", String(32), nullable=False),
)

_shares = Table(
    "calendar_shares",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("calendar_id", Integer, nullable=False),
    Column("member_email", String(320), nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
    UniqueConstraint("calendar_id", "member_email", name="uq_calendar_member"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def to_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime. Naive input is assumed to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _ts(dt: datetime) -> str:
    return to_utc(dt).isoformat(timespec="microseconds")


def _now_iso() -> str:
    return _ts(datetime.now(timezone.utc))


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CalendarStore:
    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine = make_engine(db_url or _DEFAULT_DB_URL, timeout)
        with store_errors("schema creation"):
            metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Calendars
    # ------------------------------------------------------------------

    def create_calendar(self, calendar: Calendar) -> int:
        """Insert a new calendar and return its assigned database ID."""
        with store_errors("insert calendar"), self.engine.begin() as conn:
            result = conn.execute(
                _calendars.insert().values(
                    owner_email=calendar.owner_email,
                    name=calendar.name,
                    description=calendar.description or "",
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_calendar(self, calendar_id: int) -> Optional[Calendar]:
        """Fetch a single calendar by ID. Returns None if not found."""
        with store_errors("find calendar"), self.engine.connect() as conn:
            row = conn.execute(_calendars.select().where(_calendars.c.id == calendar_id)).fetchone()
        return _row_to_calendar(row) if row is not None else None

    def list_calendars_by_owner(self, owner_email: str) -> list[Calendar]:
        """Return calendars owned by owner_email, oldest first."""
        with store_errors("list calendars"), self.engine.connect() as conn:
            rows = conn.execute(
                _calendars.select().where(_calendars.c.owner_email == owner_email).order_by(_calendars.c.id)
            ).fetchall()
        return [_row_to_calendar(r) for r in rows]

    def list_calendars_for(self, email: str) -> list[Calendar]:
        """Return calendars owned by or shared with email, oldest first."""
        shared_ids = select(_shares.c.calendar_id).where(_shares.c.member_email == email)
        with store_errors("list calendars"), self.engine.connect() as conn:
            rows = conn.execute(
                _calendars.select()
                .where((_calendars.c.owner_email == email) | (_calendars.c.id.in_(shared_ids)))
                .order_by(_calendars.c.id)
            ).fetchall()
        return [_row_to_calendar(r) for r in rows]

    # ------------------------------------------------------------------
    # Shares
    # ------------------------------------------------------------------

    def add_share(self, calendar_id: int, member_email: str) -> bool:
        """Grant member_email access to calendar_id.

        Returns True if a new share was recorded, False if it already existed.
        """
        try:
            with store_errors("insert share"), self.engine.begin() as conn:
                conn.execute(
                    _shares.insert().values(
                        calendar_id=calendar_id,
                        member_email=member_email,
                        created_at=_now_iso(),
                    )
                )
        except IntegrityError:
            return False
        return True

    def is_shared_with(self, calendar_id: int, email: str) -> bool:
        with store_errors("check share"), self.engine.connect() as conn:
            row = conn.execute(
                select(_shares.c.id).where((_shares.c.calendar_id == calendar_id) & (_shares.c.member_email == email))
            ).fetchone()
        return row is not None

    def list_shares(self, calendar_id: int) -> list[CalendarShare]:
        with store_errors("list shares"), self.engine.connect() as conn:
            rows = conn.execute(
                _shares.select().where(_shares.c.calendar_id == calendar_id).order_by(_shares.c.member_email)
            ).fetchall()
        return [_row_to_share(r) for r in rows]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def create_event(self, event: Event) -> int:
        """Insert an event and return its ID.

        The calendar existence check and the INSERT share one transaction, so
        an event is never written against a calendar row that is not there.
        Raises LookupError if calendar_id does not exist.
        """
        with store_errors("insert event"), self.engine.begin() as conn:
            exists = conn.execute(select(_calendars.c.id).where(_calendars.c.id == event.calendar_id)).fetchone()
            if exists is None:
                raise LookupError(f"calendar {event.calendar_id} does not exist")
            result = conn.execute(
                _events.insert().values(
                    calendar_id=event.calendar_id,
                    title=event.title,
                    start=_ts(event.start),
                    end=_ts(event.end),
                    description=event.description or "",
                    created_by=event.created_by,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def list_events(self, calendar_id: int, range_start: datetime, range_end: datetime) -> list[Event]:
        """Return events on calendar_id overlapping [range_start, range_end), by start time.

        An event overlaps when it starts before range_end and ends after
        range_start. Events that merely touch a boundary are excluded.
        """
        with store_errors("list events"), self.engine.connect() as conn:
            rows = conn.execute(
                _events.select()
                .where(
                    (_events.c.calendar_id == calendar_id)
                    & (_events.c.start < _ts(range_end))
                    & (_events.c.end > _ts(range_start))
                )
                .order_by(_events.c.start, _events.c.id)
            ).fetchall()
        return [_row_to_event(r) for r in rows]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        with store_errors("ping"), self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_calendar(row) -> Calendar:
    return Calendar(
        id=row.id,
        owner_email=row.owner_email,
        name=row.name,
        description=row.description or "",
        created_at=row.created_at,
    )


def _row_to_event(row) -> Event:
    return Event(
        id=row.id,
        calendar_id=row.calendar_id,
        title=row.title,
        start=to_utc(datetime.fromisoformat(row.start)),
        end=to_utc(datetime.fromisoformat(row.end)),
        description=row.description or "",
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _row_to_share(row) -> CalendarShare:
    return CalendarShare(
        id=row.id,
        calendar_id=row.calendar_id,
        member_email=row.member_email,
        created_at=row.created_at,
    )
