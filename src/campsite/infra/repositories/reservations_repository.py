"""Reservations repository - persistence for reservation records.

Uses raw SQL with psycopg2 (no ORM).

Conflict-set locking combines two mechanisms inside the caller's transaction:
- one transaction-scoped advisory lock per calendar day of the window, taken
  in ascending date order, so overlapping windows queue behind each other
  even when no row exists yet;
- SELECT ... FOR UPDATE on the rows found in the window.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Any, Iterator

from psycopg2.extensions import cursor as PgCursor

from campsite.domain.reservations import Reservation, ReservationStatus
from campsite.domain.store import TransactionScope
from campsite.infra.db import get_conn, translate_errors, txn

# First key of pg_advisory_xact_lock(int, int); the second key is the day ordinal.
ADVISORY_LOCK_NAMESPACE = 0x43414D50  # "CAMP"

_COLUMNS = "id, checkin, checkout, status, created_at, updated_at"


def _to_reservation(row: tuple[Any, ...]) -> Reservation:
    return Reservation(
        id=str(row[0]),
        checkin=row[1],
        checkout=row[2],
        status=ReservationStatus(row[3]),
        created_at=row[4],
        updated_at=row[5],
    )


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True


def find_by_id(cur: PgCursor, reservation_id: str) -> Reservation | None:
    """Fetch a reservation in any status. Malformed ids are simply not found."""
    if not _is_uuid(reservation_id):
        return None
    cur.execute(
        f"SELECT {_COLUMNS} FROM reservations WHERE id = %s",
        (reservation_id,),
    )
    row = cur.fetchone()
    return _to_reservation(row) if row is not None else None


def find_by_id_and_status(
    cur: PgCursor,
    reservation_id: str,
    status: ReservationStatus,
    *,
    lock: bool = False,
) -> Reservation | None:
    """Fetch a reservation only if it is in ``status``.

    Args:
        cur: Database cursor (within transaction).
        reservation_id: Reservation UUID.
        status: Required status.
        lock: If True, locks the row with FOR UPDATE until commit/rollback.
    """
    if not _is_uuid(reservation_id):
        return None
    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE id = %s AND status = %s::reservation_status
        {suffix}
        """,
        (reservation_id, status.value),
    )
    row = cur.fetchone()
    return _to_reservation(row) if row is not None else None


def lock_dates(cur: PgCursor, from_date: date, to_date: date) -> None:
    """Take an exclusive advisory lock on every day of [from_date, to_date].

    Locks are released automatically when the transaction ends. Ascending
    acquisition order keeps two overlapping windows from deadlocking.
    """
    day = from_date
    while day <= to_date:
        cur.execute(
            "SELECT pg_advisory_xact_lock(%s, %s)",
            (ADVISORY_LOCK_NAMESPACE, day.toordinal()),
        )
        day += timedelta(days=1)


def find_overlapping(
    cur: PgCursor,
    from_date: date,
    to_date: date,
    status: ReservationStatus,
    *,
    lock: bool = False,
) -> list[Reservation]:
    """Fetch reservations in ``status`` whose dates meet [from_date, to_date].

    A row matches when its checkin or checkout falls inside the window, or
    when it spans the whole window (checkin <= from_date, checkout >= to_date).

    Args:
        cur: Database cursor (within transaction).
        from_date: Window start (inclusive).
        to_date: Window end (inclusive).
        status: Status filter.
        lock: If True, locks the window's days and the returned rows.

    Returns:
        Matching reservations ordered by checkin.
    """
    if lock:
        lock_dates(cur, from_date, to_date)

    suffix = " FOR UPDATE" if lock else ""
    cur.execute(
        f"""
        SELECT {_COLUMNS}
        FROM reservations
        WHERE status = %s::reservation_status
          AND checkin <= %s
          AND checkout >= %s
        ORDER BY checkin
        {suffix}
        """,
        (status.value, to_date, from_date),
    )
    return [_to_reservation(row) for row in cur.fetchall()]


def insert_reservation(cur: PgCursor, reservation: Reservation) -> Reservation:
    """Insert a new reservation; the database assigns id and timestamps."""
    cur.execute(
        f"""
        INSERT INTO reservations (checkin, checkout, status)
        VALUES (%s, %s, %s::reservation_status)
        RETURNING {_COLUMNS}
        """,
        (reservation.checkin, reservation.checkout, reservation.status.value),
    )
    return _to_reservation(cur.fetchone())


def update_reservation_status(cur: PgCursor, reservation: Reservation) -> Reservation:
    """Persist the status of an existing reservation.

    Raises:
        LookupError: If no row has that id.
    """
    cur.execute(
        f"""
        UPDATE reservations
        SET status = %s::reservation_status, updated_at = now()
        WHERE id = %s
        RETURNING {_COLUMNS}
        """,
        (reservation.status.value, reservation.id),
    )
    row = cur.fetchone()
    if row is None:
        raise LookupError(f"Reservation {reservation.id} does not exist")
    return _to_reservation(row)


def save(cur: PgCursor, reservation: Reservation) -> Reservation:
    if reservation.id is None:
        return insert_reservation(cur, reservation)
    return update_reservation_status(cur, reservation)


class PostgresReservationSession:
    """ReservationSession bound to one psycopg2 cursor."""

    def __init__(self, cur: PgCursor) -> None:
        self._cur = cur

    def find_by_id(self, reservation_id: str) -> Reservation | None:
        return find_by_id(self._cur, reservation_id)

    def find_by_id_and_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        *,
        lock: bool = False,
    ) -> Reservation | None:
        return find_by_id_and_status(self._cur, reservation_id, status, lock=lock)

    def find_overlapping(
        self,
        from_date: date,
        to_date: date,
        status: ReservationStatus,
        *,
        lock: bool = False,
    ) -> list[Reservation]:
        return find_overlapping(self._cur, from_date, to_date, status, lock=lock)

    def save(self, reservation: Reservation) -> Reservation:
        return save(self._cur, reservation)


class PostgresReservationStore:
    """ReservationStore backed by PostgreSQL.

    Every transaction runs on its own connection, so it never joins a
    transaction already open elsewhere.
    """

    def __init__(self, dsn: str | None = None, *, lock_timeout_ms: int | None = None) -> None:
        self._dsn = dsn
        self._lock_timeout_ms = lock_timeout_ms

    @contextmanager
    def transaction(self, scope: TransactionScope) -> Iterator[PostgresReservationSession]:
        with translate_errors():
            conn = get_conn(self._dsn)
            try:
                with txn(conn, isolation=scope.isolation) as cur:
                    if scope.exclusive and self._lock_timeout_ms is not None:
                        # SET does not accept bind parameters.
                        cur.execute(f"SET LOCAL lock_timeout = {int(self._lock_timeout_ms)}")
                    yield PostgresReservationSession(cur)
            finally:
                conn.close()
