"""
auth/tokens.py -- Password hashing, credential checks, and session token utilities.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). Its cost factor makes
       brute-forcing low-entropy secrets expensive. The _DUMMY_HASH constant
       enables timing equalization in authenticate_user() so response time does
       not reveal whether an email is registered.

  Session tokens: secrets.token_urlsafe(32) gives 256 bits of entropy. The raw
       token goes to the client once; the store keeps HMAC-SHA256(SECRET_KEY,
       token). Lookup by hash is O(1) via a UNIQUE index, and a leaked sessions
       table cannot be replayed without SECRET_KEY. bcrypt's slowness is
       unnecessary for a high-entropy random value.

  SECRET_KEY / BCRYPT_ROUNDS: sourced from core.config.get_settings(), read
       once at module load.

Layer rule: no imports from api/ or calendars/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("collabcal.auth")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


# bcrypt refuses longer input outright; multi-byte characters count per byte.
MAX_PASSWORD_BYTES = 72


def fits_bcrypt(plain: str) -> bool:
    return len(plain.encode("utf-8")) <= MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Callers must check fits_bcrypt() first: bcrypt raises ValueError on input
    over MAX_PASSWORD_BYTES.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the store -- treat as a failed match.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("collabcal_timing_dummy")


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the email exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as a real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure.
    """
    user = store.get_by_email(email)
    if user is None:
        # Do NOT return before running bcrypt.
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------


def generate_session_token() -> str:
    """Return a new opaque session token (43 URL-safe chars, 256 bits)."""
    return secrets.token_urlsafe(32)


def hash_session_token(raw_token: str) -> str:
    """Return HMAC-SHA256(SECRET_KEY, raw_token) as a hex string.

    Deterministic, so the store can look a session up by hash directly instead
    of comparing the presented token against every live row.
    """
    return hmac.new(
        _settings.secret_key.encode(),
        raw_token.encode(),
        hashlib.sha256,
    ).hexdigest()


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two strings without short-circuiting on the first differing byte."""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
