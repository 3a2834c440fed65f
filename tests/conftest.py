"""
tests/conftest.py -- Shared test fixtures for CollabCal unit and integration tests.

This module provides:
  - _make_test_stores(): creates isolated in-memory DBs for auth + calendars
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a registered, logged-in user for API tests
  - user_store / calendar_store / sessions / accounts / calendars: per-test
    service graph over fresh in-memory stores for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment must be set before any auth/core import:
  DEBUG=true          -- get_settings() auto-generates SECRET_KEY
  BCRYPT_ROUNDS=4     -- keeps password hashing fast
  ALLOWED_HOSTS       -- TestClient sends Host: testserver
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

# CRITICAL: Set these before any auth/core import. get_settings() is cached
# and auth/tokens.py reads it at module load.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app, build_services
from auth.accounts import AccountService
from auth.sessions import SessionManager
from auth.store import UserStore
from calendars.service import CalendarService
from calendars.store import CalendarStore

ALICE = ("alice@x.com", "Alice", "Passw0rd")
BOB = ("bob@x.com", "Bob", "Hunter22B")

# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, CalendarStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules and
                   test cases don't share state.
    """
    auth_url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    calendar_url = f"sqlite:///file:test_cal_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=auth_url), CalendarStore(db_url=calendar_url)


def _patch_lifespan(user_store: UserStore, calendar_store: CalendarStore):
    """Return an async context manager that replaces the real lifespan.

    Builds the real service graph over the test stores. The purge_task is a
    long-sleeping coroutine so shutdown has a real asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        build_services(app, user_store, calendar_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


class FakeClock:
    """Deterministic clock for SessionManager. Call advance() to move time forward."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


# ---------------------------------------------------------------------------
# Unit-test fixtures -- fresh stores per test
# ---------------------------------------------------------------------------


@pytest.fixture
def stores() -> Generator[tuple[UserStore, CalendarStore], None, None]:
    user_store, calendar_store = _make_test_stores(uuid.uuid4().hex)
    yield user_store, calendar_store
    user_store.close()
    calendar_store.close()


@pytest.fixture
def user_store(stores) -> UserStore:
    return stores[0]


@pytest.fixture
def calendar_store(stores) -> CalendarStore:
    return stores[1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sessions(user_store, clock) -> SessionManager:
    return SessionManager(user_store, ttl_seconds=3600, clock=clock)


@pytest.fixture
def accounts(user_store, sessions) -> AccountService:
    return AccountService(user_store, sessions)


@pytest.fixture
def calendars(calendar_store, sessions, user_store) -> CalendarService:
    return CalendarService(calendar_store, sessions, user_store)


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[tuple[TestClient, dict[str, str]], None, None]:
    """Yield (client, headers) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use isolated in-memory stores. Alice is
    registered and logged in through the API; headers carries her Email and
    Authentication values.
    """
    user_store, calendar_store = _make_test_stores(f"api_{uuid.uuid4().hex}")
    app.router.lifespan_context = _patch_lifespan(user_store, calendar_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        email, name, password = ALICE
        resp = client.post(
            "/api/v1/auth/users",
            json={"email": email, "name": name, "password": password, "confirm_password": password},
        )
        assert resp.status_code == 201, resp.text
        resp = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        headers = {"Email": email, "Authentication": resp.json()["authentication"]}
        yield client, headers

    user_store.close()
    calendar_store.close()
