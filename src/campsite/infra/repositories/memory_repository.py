"""In-memory ReservationStore for single-process deployments and tests.

Honors the same locking contract as the PostgreSQL store:
- find_overlapping(lock=True) takes an exclusive lock on the closed date
  window; any other transaction asking for an overlapping window waits until
  the holder commits or rolls back. Disjoint windows never wait.
- find_by_id_and_status(lock=True) locks the single row by id.
- Writes are buffered per transaction and become visible on commit only.

Lock waits are bounded by ``lock_timeout`` seconds; on expiry the waiting
transaction fails with TransientStorageError and is rolled back.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Callable, Iterator

from campsite.domain.errors import StorageError, TransientStorageError
from campsite.domain.reservations import Reservation, ReservationStatus
from campsite.domain.store import TransactionScope
from campsite.infra.time import utc_now


class InMemoryReservationSession:
    """ReservationSession bound to one in-memory transaction."""

    def __init__(self, store: InMemoryReservationStore, scope: TransactionScope) -> None:
        self._store = store
        self.scope = scope
        self._pending: dict[str, Reservation] = {}

    def _visible(self) -> dict[str, Reservation]:
        rows = self._store._snapshot()
        rows.update(self._pending)
        return rows

    def find_by_id(self, reservation_id: str) -> Reservation | None:
        return self._visible().get(reservation_id)

    def find_by_id_and_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        *,
        lock: bool = False,
    ) -> Reservation | None:
        if lock:
            self._store._lock_row(self, reservation_id)
        reservation = self.find_by_id(reservation_id)
        if reservation is None or reservation.status is not status:
            return None
        return reservation

    def find_overlapping(
        self,
        from_date: date,
        to_date: date,
        status: ReservationStatus,
        *,
        lock: bool = False,
    ) -> list[Reservation]:
        if lock:
            self._store._lock_range(self, from_date, to_date)
        matches = [
            r
            for r in self._visible().values()
            if r.status is status and r.checkin <= to_date and r.checkout >= from_date
        ]
        return sorted(matches, key=lambda r: r.checkin)

    def save(self, reservation: Reservation) -> Reservation:
        now = utc_now()
        if reservation.id is None:
            saved = replace(reservation, id=str(uuid.uuid4()), created_at=now, updated_at=now)
        else:
            if self.find_by_id(reservation.id) is None:
                raise StorageError(f"Reservation {reservation.id} does not exist")
            saved = replace(reservation, updated_at=now)
        self._pending[saved.id] = saved
        return saved


class InMemoryReservationStore:
    def __init__(self, *, lock_timeout: float | None = 5.0) -> None:
        self._lock_timeout = lock_timeout
        self._rows: dict[str, Reservation] = {}
        self._cond = threading.Condition()
        self._range_locks: list[tuple[InMemoryReservationSession, date, date]] = []
        self._row_locks: dict[str, InMemoryReservationSession] = {}

    def _snapshot(self) -> dict[str, Reservation]:
        with self._cond:
            return dict(self._rows)

    def _wait_for(self, is_free: Callable[[], bool], what: str) -> None:
        # Caller holds self._cond.
        if not self._cond.wait_for(is_free, timeout=self._lock_timeout):
            raise TransientStorageError(f"lock wait timeout on {what}")

    def _lock_range(self, owner: InMemoryReservationSession, from_date: date, to_date: date) -> None:
        def is_free() -> bool:
            return not any(
                holder is not owner and start <= to_date and from_date <= end
                for holder, start, end in self._range_locks
            )

        with self._cond:
            self._wait_for(is_free, f"dates {from_date}..{to_date}")
            self._range_locks.append((owner, from_date, to_date))

    def _lock_row(self, owner: InMemoryReservationSession, reservation_id: str) -> None:
        def is_free() -> bool:
            return self._row_locks.get(reservation_id, owner) is owner

        with self._cond:
            self._wait_for(is_free, f"reservation {reservation_id}")
            self._row_locks[reservation_id] = owner

    def _release(self, owner: InMemoryReservationSession, *, commit: bool) -> None:
        with self._cond:
            if commit:
                self._rows.update(owner._pending)
            self._range_locks = [lock for lock in self._range_locks if lock[0] is not owner]
            self._row_locks = {k: v for k, v in self._row_locks.items() if v is not owner}
            self._cond.notify_all()

    @contextmanager
    def transaction(self, scope: TransactionScope) -> Iterator[InMemoryReservationSession]:
        session = InMemoryReservationSession(self, scope)
        try:
            yield session
        except BaseException:
            self._release(session, commit=False)
            raise
        self._release(session, commit=True)

    def all(self) -> list[Reservation]:
        """Committed reservations ordered by checkin."""
        return sorted(self._snapshot().values(), key=lambda r: r.checkin)
