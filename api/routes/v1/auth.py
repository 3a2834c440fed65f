"""
api/routes/v1/auth.py -- Registration, login, and profile REST endpoints.

Routes:
  POST  /api/v1/auth/users        -- register (public)
  POST  /api/v1/auth/login        -- email/password login; returns session token
  POST  /api/v1/auth/logout       -- revoke the presented session
  POST  /api/v1/auth/logout-all   -- revoke every session of the caller
  GET   /api/v1/auth/me           -- current user info
  PATCH /api/v1/auth/me/name      -- change display name

Identity headers (gated routes): Email + Authentication. Missing -> 400,
invalid/expired/revoked -> 401 with one fixed body.

Security:
  Login uses SessionManager.login(), which runs bcrypt even for unknown emails
  (timing equalization). Wrong email and wrong password return the same
  "bad_credentials" error. Responses carrying a token get Cache-Control: no-store.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import (
    CreateUserResponse,
    LoginRequest,
    LoginResponse,
    LogoutAllResponse,
    MeResponse,
    MessageResponse,
    NameChange,
    UserCreate,
)
from auth.accounts import AccountService
from auth.dependencies import Identity, get_identity, unauthorized
from auth.sessions import SessionManager
from core.errors import ErrorKind

router = APIRouter()

# Rule violations are 400; a taken email is a conflict.
_REGISTRATION_STATUS: dict[ErrorKind, int] = {
    ErrorKind.USERNAME_TAKEN: 409,
}


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/users", response_model=CreateUserResponse, status_code=201)
def create_user(request: Request, body: UserCreate) -> CreateUserResponse:
    """Register a new account.

    On a rule violation the error code is the ErrorKind value
    (blank_username, weak_password, password_mismatch, ...) and the message is
    the human-readable rule text.
    """
    accounts: AccountService = request.app.state.accounts
    result = accounts.create_user(body.email, body.name, body.password, body.confirm_password)
    if not result.ok:
        raise HTTPException(
            status_code=_REGISTRATION_STATUS.get(result.kind, 400),
            detail={"code": result.kind.value, "message": result.message},
        )
    return CreateUserResponse(email=body.email, message=result.message)


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Exchange email/password for a session token."""
    sessions: SessionManager = request.app.state.sessions
    token = sessions.login(body.email, body.password)
    if token is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            authentication=token,
            email=body.email,
            expires_in=sessions.ttl_seconds,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, identity: Identity = Depends(get_identity)) -> MessageResponse:
    """Revoke the session identified by the Authentication header."""
    sessions: SessionManager = request.app.state.sessions
    if not sessions.logout(identity.email, identity.token):
        raise unauthorized()
    return MessageResponse(message="Logged out.")


@router.post("/auth/logout-all", response_model=LogoutAllResponse)
def logout_all(request: Request, identity: Identity = Depends(get_identity)) -> LogoutAllResponse:
    """Revoke every live session of the caller, including the presented one."""
    sessions: SessionManager = request.app.state.sessions
    revoked = sessions.logout_all(identity.email, identity.token)
    if revoked == 0:
        raise unauthorized()
    return LogoutAllResponse(revoked=revoked)


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request, identity: Identity = Depends(get_identity)) -> MeResponse:
    """Return profile information for the authenticated user."""
    accounts: AccountService = request.app.state.accounts
    sessions: SessionManager = request.app.state.sessions
    user = accounts.get_profile(identity.email, identity.token)
    if user is None:
        raise unauthorized()
    return MeResponse.from_user(user, sessions.active_session_count(user.id))


@router.patch("/auth/me/name", response_model=MessageResponse)
def change_name(
    request: Request,
    body: NameChange,
    identity: Identity = Depends(get_identity),
) -> MessageResponse:
    """Overwrite the caller's display name."""
    accounts: AccountService = request.app.state.accounts
    if not accounts.change_name(identity.email, identity.token, body.name):
        raise unauthorized()
    return MessageResponse(message="Name updated.")
