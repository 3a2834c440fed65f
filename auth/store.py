"""
auth/store.py -- SQLAlchemy Core persistence layer for identity entities.

Pattern: Repository + Data Mapper (same as calendars/store.py).
UserStore is the repository; _row_to_user / _row_to_session are the mappers.
Service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is the authoritative uniqueness guarantee. The credential
  validator's "already exists" check is an early exit only; two concurrent
  registrations for the same email both pass it, and the second INSERT fails
  here with IntegrityError.

  Sessions are stored by token_hash (HMAC of the raw token), never the raw
  token. token_hash is UNIQUE so lookup is a single index probe.

Timestamps are stored as UTC ISO-8601 strings with a fixed microsecond
precision, so lexical comparison in SQL matches chronological order.

DB path: auth/collabcal_auth.db (sibling to calendars/collabcal_calendars.db).

Layer rule: no imports from api/ or calendars/.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select, text

from auth.models import Session, User
from core.database import make_engine, store_errors

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'collabcal_auth.db'}"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("name", String(255), nullable=False),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, nullable=False, index=True),
    Column("email", String(320), nullable=False),
    Column("token_hash", String(64), nullable=False, unique=True),  # HMAC-SHA256 hex
    Column("issued_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
    Column("revoked_at", String(32)),
)

# Fields update_user() accepts. Anything else is a programming error.
_MUTABLE_USER_FIELDS = {"name"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _now_iso() -> str:
    return _iso(datetime.now(timezone.utc))


def _parse(value: str | None) -> datetime | None:
    if value is None:
        return None
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Session entities.

    Usage:
        store = UserStore()
        store.create_user(User(email="a@x.com", name="A", hashed_password=hash_password("Passw0rd")))
        user = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str = _DEFAULT_DB_URL, timeout: float = 5.0) -> None:
        self.engine = make_engine(db_url or _DEFAULT_DB_URL, timeout)
        with store_errors("schema creation"):
            _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        AccountService catches it as a signal that a concurrent request
        registered the same email first.
        """
        with store_errors("insert user"), self.engine.begin() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=user.email,
                    name=user.name,
                    hashed_password=user.hashed_password,
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with store_errors("find user"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        with store_errors("find user"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def email_exists(self, email: str) -> bool:
        """Cheap existence probe used by the credential validator's uniqueness check."""
        with store_errors("check email"), self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email)).fetchone()
        return row is not None

    def list_users(self) -> list[User]:
        """Return all users ordered by email."""
        with store_errors("list users"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().order_by(_users.c.email)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields (currently only name) on an existing user.

        Returns True if a row was updated, False if user_id was not found.
        Unknown field names raise ValueError.
        """
        unknown = set(fields) - _MUTABLE_USER_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if not fields:
            return False
        with store_errors("update user"), self.engine.begin() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
        return result.rowcount > 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with store_errors("update last login"), self.engine.begin() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def create_session(self, session: Session) -> int:
        """Insert a session row and return its ID."""
        with store_errors("insert session"), self.engine.begin() as conn:
            result = conn.execute(
                _sessions.insert().values(
                    user_id=session.user_id,
                    email=session.email,
                    token_hash=session.token_hash,
                    issued_at=_iso(session.issued_at),
                    expires_at=_iso(session.expires_at),
                )
            )
            return result.inserted_primary_key[0]

    def get_session_by_hash(self, token_hash: str) -> Session | None:
        """Look up a session by its token hash. O(1) via the UNIQUE index.

        Returns expired and revoked rows too; the caller decides liveness.
        """
        with store_errors("find session"), self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.token_hash == token_hash)).fetchone()
        return _row_to_session(row) if row is not None else None

    def revoke_session(self, session_id: int, when: datetime) -> bool:
        """Mark one session revoked. Returns False if it was already revoked or missing."""
        with store_errors("revoke session"), self.engine.begin() as conn:
            result = conn.execute(
                _sessions.update()
                .where((_sessions.c.id == session_id) & (_sessions.c.revoked_at.is_(None)))
                .values(revoked_at=_iso(when))
            )
        return result.rowcount > 0

    def revoke_sessions_for_user(self, user_id: int, when: datetime) -> int:
        """Revoke every unexpired, unrevoked session owned by user_id. Returns the count."""
        with store_errors("revoke sessions"), self.engine.begin() as conn:
            result = conn.execute(
                _sessions.update()
                .where(
                    (_sessions.c.user_id == user_id)
                    & (_sessions.c.revoked_at.is_(None))
                    & (_sessions.c.expires_at > _iso(when))
                )
                .values(revoked_at=_iso(when))
            )
        return result.rowcount

    def count_live_sessions(self, user_id: int, now: datetime) -> int:
        with store_errors("count sessions"), self.engine.connect() as conn:
            result = conn.execute(
                select(func.count())
                .select_from(_sessions)
                .where(
                    (_sessions.c.user_id == user_id)
                    & (_sessions.c.revoked_at.is_(None))
                    & (_sessions.c.expires_at > _iso(now))
                )
            ).scalar()
        return result or 0

    def purge_sessions(self, now: datetime) -> int:
        """Delete expired and revoked sessions. Returns number of rows removed."""
        with store_errors("purge sessions"), self.engine.begin() as conn:
            result = conn.execute(
                _sessions.delete().where((_sessions.c.expires_at <= _iso(now)) | (_sessions.c.revoked_at.is_not(None)))
            )
        return result.rowcount

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with store_errors("ping"), self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        last_login=row.last_login,
    )


def _row_to_session(row) -> Session:
    return Session(
        id=row.id,
        user_id=row.user_id,
        email=row.email,
        token_hash=row.token_hash,
        issued_at=_parse(row.issued_at),
        expires_at=_parse(row.expires_at),
        revoked_at=_parse(row.revoked_at),
    )
