"""
core/database.py -- Engine construction and error translation shared by the stores.

auth/store.py and calendars/store.py both build a SQLAlchemy Core engine the
same way (SQLite WAL mode, cross-thread connections, a bounded wait) and both
translate driver failures into the core/errors.py hierarchy. That shared
plumbing lives here so the repositories only describe tables and queries.

Timeout policy:
  SQLite: the driver's busy timeout is set to store_timeout_seconds, so a
      writer blocked by another writer gives up with "database is locked".
  Other backends: pool_timeout bounds the wait for a pooled connection.
  Both cases surface as StoreTimeoutError.

Layer rule: core/ is the kernel. No imports from api/, auth/, or calendars/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from core.errors import StoreTimeoutError, StoreUnavailableError

logger = logging.getLogger("collabcal.store")

_TIMEOUT_MARKERS = ("database is locked", "timeout", "timed out")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL (Write-Ahead Logging) allows readers to proceed without blocking
    during writes. Set per-connection because SQLite PRAGMAs are not
    inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str, timeout: float = 5.0) -> Engine:
    """Create an engine for db_url with a bounded lock/connection wait."""
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers in a thread pool, so one connection may be
        # touched from several threads over its lifetime.
        engine = create_engine(db_url, connect_args={"check_same_thread": False, "timeout": timeout})
        event.listen(engine, "connect", _set_wal_mode)
        return engine
    return create_engine(db_url, pool_timeout=timeout, pool_pre_ping=True)


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures raised inside the block.

    IntegrityError passes through untouched: callers treat a UNIQUE violation
    as a domain outcome (e.g. a concurrent registration), not an outage.
    """
    try:
        yield
    except IntegrityError:
        raise
    except PoolTimeoutError as exc:
        logger.exception("Store timeout during %s", operation)
        raise StoreTimeoutError(f"Timed out during {operation}.") from exc
    except OperationalError as exc:
        if any(marker in str(exc).lower() for marker in _TIMEOUT_MARKERS):
            logger.exception("Store timeout during %s", operation)
            raise StoreTimeoutError(f"Timed out during {operation}.") from exc
        logger.exception("Store failure during %s", operation)
        raise StoreUnavailableError(f"Store unavailable during {operation}.") from exc
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", operation)
        raise StoreUnavailableError(f"Store unavailable during {operation}.") from exc
