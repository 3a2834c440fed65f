"""
auth/accounts.py -- Account registration and profile mutation.

create_user() is public (no session needed). Everything else goes through the
SessionManager gate first and returns False/None without touching the store
when the gate fails.

Layer rule: no imports from api/ or calendars/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.credentials import MSG_USERNAME_TAKEN, CredentialValidator, ValidationResult, is_blank, normalize_email
from auth.models import User
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import MAX_PASSWORD_BYTES, fits_bcrypt, hash_password
from core.errors import ErrorKind, InvalidRequestError

logger = logging.getLogger("collabcal.auth")

MSG_PASSWORD_MISMATCH = "Passwords do not match"
MSG_BLANK_NAME = "Name field is blank"
MSG_ACCOUNT_CREATED = "Account created"
MSG_PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"


class _RegisteredEmails:
    """Container view over the user store so `email in view` is an indexed lookup."""

    def __init__(self, store: UserStore) -> None:
        self._store = store

    def __contains__(self, email: object) -> bool:
        return isinstance(email, str) and self._store.email_exists(email)


class AccountService:
    def __init__(
        self,
        store: UserStore,
        sessions: SessionManager,
        validator: CredentialValidator | None = None,
    ) -> None:
        self._store = store
        self._sessions = sessions
        self._validator = validator or CredentialValidator()

    def create_user(self, email: str, name: str, password: str, confirm_password: str) -> ValidationResult:
        """Register a new account keyed by email.

        The email is trimmed before any check. Check order: password
        confirmation, the credential rules (email is the username), the bcrypt
        input limit, then the display name. The INSERT relies on the
        UNIQUE(email) constraint for correctness under concurrent registration.
        """
        if password != confirm_password:
            return ValidationResult.failure(ErrorKind.PASSWORD_MISMATCH, MSG_PASSWORD_MISMATCH)

        email = normalize_email(email)
        result = self._validator.validate(email, password, _RegisteredEmails(self._store))
        if not result.ok:
            return result
        if not fits_bcrypt(password):
            return ValidationResult.failure(ErrorKind.INVALID_REQUEST, MSG_PASSWORD_TOO_LONG)
        if is_blank(name):
            return ValidationResult.failure(ErrorKind.BLANK_NAME, MSG_BLANK_NAME)

        user = User(email=email, name=name.strip(), hashed_password=hash_password(password))
        try:
            user_id = self._store.create_user(user)
        except IntegrityError:
            # Lost the race against a concurrent registration for the same email.
            return ValidationResult.failure(ErrorKind.USERNAME_TAKEN, MSG_USERNAME_TAKEN)
        logger.info("Account created user_id=%s", user_id)
        return ValidationResult.success(MSG_ACCOUNT_CREATED)

    def change_name(self, email: str, token: str, new_name: str) -> bool:
        """Overwrite the display name of the authenticated user. Names need not be unique."""
        user = self._sessions.resolve(email, token)
        if user is None:
            return False
        if is_blank(new_name):
            raise InvalidRequestError(MSG_BLANK_NAME)
        return self._store.update_user(user.id, name=new_name.strip())

    def get_profile(self, email: str, token: str) -> User | None:
        return self._sessions.resolve(email, token)
