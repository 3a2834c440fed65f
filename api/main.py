"""
api/main.py -- FastAPI application entry point for CollabCal.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins

Lifespan is the composition root: it builds the stores, SessionManager,
AccountService and CalendarService once, hands each its collaborators
explicitly, and parks them on app.state for the route handlers. Shutdown
cancels the session purge task and closes the stores.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.calendars import router as calendars_router
from auth.accounts import AccountService
from auth.sessions import SessionManager
from auth.store import UserStore
from calendars.service import CalendarService
from calendars.store import CalendarStore
from core.config import get_settings
from core.errors import CollabCalError, ErrorKind, StoreUnavailableError

API_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("collabcal.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Delete expired and revoked sessions every `interval` seconds.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(app.state.sessions.purge_expired)
        except StoreUnavailableError:
            # Already logged by the store; try again next interval.
            continue


# ---------------------------------------------------------------------------
# Lifespan -- composition root
# ---------------------------------------------------------------------------


def build_services(app: FastAPI, user_store: UserStore, calendar_store: CalendarStore) -> None:
    """Wire the domain services onto app.state. Shared by lifespan and tests."""
    settings = get_settings()
    app.state.user_store = user_store
    app.state.calendar_store = calendar_store
    app.state.sessions = SessionManager(user_store, ttl_seconds=settings.session_ttl_seconds)
    app.state.accounts = AccountService(user_store, app.state.sessions)
    app.state.calendars = CalendarService(calendar_store, app.state.sessions, user_store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    logger.info("CollabCal API starting up")

    user_store = UserStore(settings.auth_db_url, timeout=settings.store_timeout_seconds)
    calendar_store = CalendarStore(settings.calendar_db_url, timeout=settings.store_timeout_seconds)
    build_services(app, user_store, calendar_store)
    logger.info("Stores initialized (session_ttl=%ss)", settings.session_ttl_seconds)

    app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.session_purge_interval_seconds))

    yield

    app.state.purge_task.cancel()
    app.state.user_store.close()
    app.state.calendar_store.close()
    logger.info("CollabCal API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CollabCal API",
    description="Multi-user collaborative calendars.",
    version=API_VERSION,
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH"],
    allow_headers=["Content-Type", "Email", "Authentication"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(calendars_router, prefix="/api/v1", tags=["Calendars"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

_KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.TIMEOUT: 504,
}


@app.exception_handler(CollabCalError)
async def domain_error_handler(request: Request, exc: CollabCalError) -> JSONResponse:
    """Map service-layer exceptions to HTTP statuses.

    Store failures get a generic message; the specific cause is in the log.
    """
    status = _KIND_STATUS.get(exc.kind, 400)
    message = exc.message
    if isinstance(exc, StoreUnavailableError):
        message = "The service is temporarily unavailable."
    return JSONResponse(
        status_code=status,
        content=ErrorResponse(error=ErrorDetail(code=exc.kind.value, message=message)).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a dict detail. When detail is
    already structured, use it directly as the error field.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and store reachability."""
    database = "ok"
    try:
        request.app.state.user_store.ping()
        request.app.state.calendar_store.ping()
    except StoreUnavailableError:
        database = "error"
    return HealthResponse(version=API_VERSION, components={"app": "ok", "database": database})
