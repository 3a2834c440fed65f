"""
auth/dependencies.py -- FastAPI Depends() helpers for identity headers.

Clients identify themselves on every gated request with two headers:
  Email:          the account email (identity key)
  Authentication: the session token returned by POST /auth/login

get_identity() only extracts the pair (HTTP 400 when either header is missing
or blank). It does NOT validate the session: the services run the gate
themselves so no store call can happen before authorization.

unauthorized() builds the single HTTP 401 that every gated route raises.

Layer rule: no imports from api/ or calendars/.
  auth/dependencies.py may import from fastapi (for Header/HTTPException)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException

UNAUTHORIZED_DETAIL = {"code": "unauthorized", "message": "Authentication required."}


@dataclass(frozen=True)
class Identity:
    email: str
    token: str


def get_identity(
    email: str | None = Header(default=None, alias="Email"),
    authentication: str | None = Header(default=None, alias="Authentication"),
) -> Identity:
    """Read the Email / Authentication header pair. Raises HTTP 400 if either is missing."""
    if not email or not email.strip() or not authentication or not authentication.strip():
        raise HTTPException(
            status_code=400,
            detail={"code": "missing_identity", "message": "Missing 'Email' and/or 'Authentication' headers."},
        )
    return Identity(email=email.strip(), token=authentication.strip())


def unauthorized() -> HTTPException:
    """The one 401 every gated route returns, whatever the underlying reason."""
    return HTTPException(status_code=401, detail=UNAUTHORIZED_DETAIL)

