"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from DATABASE_URL
- txn(): Context manager for a transaction at a given isolation level
- translate_errors(): Map psycopg2 failures onto the core error taxonomy
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

import psycopg2
from psycopg2 import errors as pg_errors
from psycopg2.extensions import (
    ISOLATION_LEVEL_DEFAULT,
    ISOLATION_LEVEL_SERIALIZABLE,
    connection as PgConnection,
    cursor as PgCursor,
    parse_dsn,
)

from campsite.domain.errors import StorageError, TransientStorageError
from campsite.domain.store import Isolation

# Failures the engine reports when a concurrent transaction won.
TRANSIENT_ERRORS: tuple[type[psycopg2.Error], ...] = (
    pg_errors.SerializationFailure,
    pg_errors.DeadlockDetected,
    pg_errors.LockNotAvailable,
    pg_errors.ExclusionViolation,
)

_ISOLATION_LEVELS = {
    Isolation.DEFAULT: ISOLATION_LEVEL_DEFAULT,
    Isolation.SERIALIZABLE: ISOLATION_LEVEL_SERIALIZABLE,
}


def get_conn(dsn: str | None = None) -> PgConnection:
    """Get a new database connection.

    Args:
        dsn: libpq DSN or URL. Defaults to DATABASE_URL.

    Returns:
        psycopg2 connection object.

    Raises:
        RuntimeError: If no DSN is given and DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = dsn or os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    db_password = os.environ.get("DB_PASSWORD")
    if db_password and not parse_dsn(dsn).get("password"):
        return psycopg2.connect(dsn, password=db_password)
    return psycopg2.connect(dsn)


@contextmanager
def translate_errors() -> Iterator[None]:
    """Re-raise psycopg2 errors as TransientStorageError or StorageError."""
    try:
        yield
    except TRANSIENT_ERRORS as exc:
        raise TransientStorageError(str(exc).strip()) from exc
    except psycopg2.Error as exc:
        raise StorageError(str(exc).strip()) from exc


@contextmanager
def txn(
    conn: PgConnection | None = None,
    *,
    isolation: Isolation = Isolation.DEFAULT,
) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit, which
    makes the transaction independent of any other one in flight.
    Commits on successful exit, rolls back on exception.

    Args:
        conn: Optional existing connection (must be idle).
        isolation: Isolation level for this transaction only.

    Yields:
        Cursor for executing queries within the transaction.

    Example:
        with txn(isolation=Isolation.SERIALIZABLE) as cur:
            cur.execute("SELECT 1")
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    previous_level = conn.isolation_level
    conn.isolation_level = _ISOLATION_LEVELS[isolation]
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()
        else:
            conn.isolation_level = previous_level
