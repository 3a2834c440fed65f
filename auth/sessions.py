"""
auth/sessions.py -- Session issuance, validation, expiry, and revocation.

SessionManager is the authorization gate. Every gated operation in
AccountService and CalendarService calls resolve() / validate_authentication()
with the (email, token) pair from the current request before touching a store.

Session lifecycle:
  login()   -> VALID
  ttl lapse -> EXPIRED   (terminal)
  logout()  -> REVOKED   (terminal)
  purge_expired() deletes EXPIRED and REVOKED rows.

Failure reporting: every negative outcome of login()/validate_authentication()
is a plain None/False. Why it failed (unknown email, wrong password, unknown
token, email mismatch, expiry, revocation) only reaches the log, never the
caller.

Layer rule: no imports from api/ or calendars/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.credentials import normalize_email
from auth.models import Session, SessionState, User
from auth.store import UserStore
from auth.tokens import authenticate_user, constant_time_equals, generate_session_token, hash_session_token

logger = logging.getLogger("collabcal.auth")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionManager:
    """Issues and validates opaque session tokens.

    Multiple concurrent sessions per identity are allowed; a new login does not
    revoke earlier tokens. clock is injectable so tests can move time forward.
    """

    def __init__(
        self,
        store: UserStore,
        ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return int(self._ttl.total_seconds())

    def login(self, email: str, password: str) -> str | None:
        """Return a fresh session token for valid credentials, None otherwise."""
        email = normalize_email(email)
        if not email or not password:
            return None
        user = authenticate_user(self._store, email, password)
        if user is None:
            logger.info("Login rejected")
            return None

        token = generate_session_token()
        now = self._clock()
        self._store.create_session(
            Session(
                user_id=user.id,
                email=user.email,
                token_hash=hash_session_token(token),
                issued_at=now,
                expires_at=now + self._ttl,
            )
        )
        self._store.update_last_login(user.id)
        logger.info("Session issued for user_id=%s", user.id)
        return token

    def validate_authentication(self, email: str, token: str) -> bool:
        """True only if token belongs to a live session owned by email."""
        return self._live_session(email, token) is not None

    def resolve(self, email: str, token: str) -> User | None:
        """Return the authenticated User for (email, token), or None."""
        session = self._live_session(email, token)
        if session is None:
            return None
        return self._store.get_by_id(session.user_id)

    def logout(self, email: str, token: str) -> bool:
        """Revoke the session behind token. False if there was no live session to revoke."""
        session = self._live_session(email, token)
        if session is None:
            return False
        revoked = self._store.revoke_session(session.id, self._clock())
        if revoked:
            logger.info("Session revoked for user_id=%s", session.user_id)
        return revoked

    def logout_all(self, email: str, token: str) -> int:
        """Revoke every live session of the authenticated identity. Returns the count."""
        session = self._live_session(email, token)
        if session is None:
            return 0
        count = self._store.revoke_sessions_for_user(session.user_id, self._clock())
        logger.info("Revoked %d session(s) for user_id=%s", count, session.user_id)
        return count

    def active_session_count(self, user_id: int) -> int:
        return self._store.count_live_sessions(user_id, self._clock())

    def purge_expired(self) -> int:
        """Delete expired and revoked session rows. Returns number removed."""
        removed = self._store.purge_sessions(self._clock())
        if removed:
            logger.info("Purged %d stale session(s)", removed)
        return removed

    def _live_session(self, email: str, token: str) -> Session | None:
        email = normalize_email(email)
        if not email or not token:
            return None
        session = self._store.get_session_by_hash(hash_session_token(token))
        if session is None:
            return None
        if not constant_time_equals(session.email, email):
            return None
        if session.state(self._clock()) is not SessionState.VALID:
            return None
        return session
