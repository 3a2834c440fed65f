"""
auth/credentials.py -- Username/password acceptability rules.

Pure rule checker: the only I/O is whatever `existing_usernames.__contains__`
does, and that is read-only. Rules run in a fixed order and the first failure
wins:

  1. blank username
  2. blank password
  3. username already taken (case-sensitive exact match)
  4. weak password (< 8 chars, or no uppercase / lowercase / digit)

Layer rule: no imports from api/ or calendars/.
"""

from __future__ import annotations

from collections.abc import Container
from dataclasses import dataclass

from core.errors import ErrorKind

MIN_PASSWORD_LENGTH = 8

MSG_BLANK_USERNAME = "Username field is blank"
MSG_BLANK_PASSWORD = "Password field is blank"
MSG_USERNAME_TAKEN = "Username already exists"
MSG_WEAK_PASSWORD = (
    "Password must be at least 8 characters long with at least one uppercase letter, lowercase letter, and number"
)
MSG_VALID = "Username and Password are Valid"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a credential or registration check.

    kind is None on success. message is always human-readable and safe to show
    to the user who submitted the form.
    """

    ok: bool
    message: str
    kind: ErrorKind | None = None

    @classmethod
    def success(cls, message: str = MSG_VALID) -> ValidationResult:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> ValidationResult:
        return cls(ok=False, message=message, kind=kind)


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def normalize_email(email: str | None) -> str:
    """Identity keys are compared after trimming surrounding whitespace, never case-folded."""
    return email.strip() if email else ""


def is_strong_password(password: str) -> bool:
    """Length >= 8 and at least one uppercase, one lowercase and one digit. No symbol rule."""
    return (
        len(password) >= MIN_PASSWORD_LENGTH
        and any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
    )


class CredentialValidator:
    """Checks a candidate username/password pair against the registration rules."""

    def validate(self, username: str, password: str, existing_usernames: Container[str]) -> ValidationResult:
        if is_blank(username):
            return ValidationResult.failure(ErrorKind.BLANK_USERNAME, MSG_BLANK_USERNAME)
        if is_blank(password):
            return ValidationResult.failure(ErrorKind.BLANK_PASSWORD, MSG_BLANK_PASSWORD)
        if username in existing_usernames:
            return ValidationResult.failure(ErrorKind.USERNAME_TAKEN, MSG_USERNAME_TAKEN)
        if not is_strong_password(password):
            return ValidationResult.failure(ErrorKind.WEAK_PASSWORD, MSG_WEAK_PASSWORD)
        return ValidationResult.success()
