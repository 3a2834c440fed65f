"""
auth/models.py -- Domain dataclasses for identity entities.

Pattern: Data class. Mirrors calendars/models.py -- dataclasses own domain
shape; stores and services do the work. The one exception is the User
construction guard in __post_init__: a User cannot exist without an email, a
name, and a bcrypt hash.

Layer rule: no imports from api/ or calendars/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

# bcrypt hashes are "$2a$", "$2b$" or "$2y$" followed by cost and salt.
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


@dataclass
class User:
    """A registered identity. email is the identity key (case-sensitive, unique).

    hashed_password must be a bcrypt hash. Passing a plaintext password (or
    leaving any required field blank) raises ValueError, so a half-built User
    never reaches the store.
    """

    email: str
    name: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None
    last_login: str | None = None

    def __post_init__(self) -> None:
        if not self.email or not self.email.strip():
            raise ValueError("User.email is required")
        if not self.name or not self.name.strip():
            raise ValueError("User.name is required")
        if not self.hashed_password or not self.hashed_password.startswith(_BCRYPT_PREFIXES):
            raise ValueError("User.hashed_password must be a bcrypt hash")


class SessionState(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass
class Session:
    """A login session. The raw token is never stored -- only its HMAC hash.

    issued_at / expires_at / revoked_at are timezone-aware UTC datetimes.
    email is denormalized from the owning User so validation needs one lookup.
    """

    user_id: int
    email: str
    token_hash: str
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None
    id: int | None = None

    def state(self, now: datetime) -> SessionState:
        if self.revoked_at is not None:
            return SessionState.REVOKED
        if now >= self.expires_at:
            return SessionState.EXPIRED
        return SessionState.VALID
