"""
core/errors.py -- Failure kinds and the exception hierarchy shared by every layer.

Two channels carry failures out of the domain services:

  Returned results: credential rule violations come back as a
      ValidationResult carrying an ErrorKind, and authorization failures come
      back as None/False. Neither is raised.

  Raised exceptions: everything below CollabCalError. The API layer registers
      one exception handler for the base class and maps `kind` to a status code.

Authorization failures deliberately have a single kind (UNAUTHORIZED). Unknown
email, unknown token, expired token and revoked token are indistinguishable to
the caller.

Layer rule: core/ is the kernel. No imports from api/, auth/, or calendars/.
"""

from enum import Enum


class ErrorKind(str, Enum):
    BLANK_USERNAME = "blank_username"
    BLANK_PASSWORD = "blank_password"
    BLANK_NAME = "blank_name"
    USERNAME_TAKEN = "username_taken"
    WEAK_PASSWORD = "weak_password"
    PASSWORD_MISMATCH = "password_mismatch"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"
    STORE_UNAVAILABLE = "store_unavailable"
    TIMEOUT = "timeout"


class CollabCalError(Exception):
    """Base class for failures raised out of the service layer."""

    kind: ErrorKind = ErrorKind.INVALID_REQUEST

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value


class InvalidRequestError(CollabCalError):
    kind = ErrorKind.INVALID_REQUEST


class NotFoundError(CollabCalError):
    """A referenced calendar or user is absent or not visible to the caller."""

    kind = ErrorKind.NOT_FOUND


class ForbiddenError(CollabCalError):
    """The caller is authenticated but may not perform this operation."""

    kind = ErrorKind.FORBIDDEN


class StoreUnavailableError(CollabCalError):
    """The persistence layer failed. Never swallowed; surfaced as a generic failure."""

    kind = ErrorKind.STORE_UNAVAILABLE


class StoreTimeoutError(StoreUnavailableError):
    """A store call exceeded store_timeout_seconds waiting for a lock or connection."""

    kind = ErrorKind.TIMEOUT
