"""Storage contract consumed by the reservation manager.

A store opens transactions described by a TransactionScope and hands out a
session bound to that transaction. The session commits when the ``with``
block exits cleanly and rolls back when it raises.

Example:
    with store.transaction(BOOKING_SCOPE) as session:
        rows = session.find_overlapping(d1, d2, ReservationStatus.ACTIVE, lock=True)
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Protocol

from campsite.domain.reservations import Reservation, ReservationStatus


class Isolation(str, Enum):
    DEFAULT = "default"
    SERIALIZABLE = "serializable"


class LockMode(str, Enum):
    NONE = "none"
    EXCLUSIVE = "exclusive"


@dataclass(frozen=True)
class TransactionScope:
    """Isolation level and lock mode of one unit of work."""

    isolation: Isolation = Isolation.DEFAULT
    lock: LockMode = LockMode.NONE

    @property
    def exclusive(self) -> bool:
        return self.lock is LockMode.EXCLUSIVE


# Booking: serializable, conflict set locked until commit.
BOOKING_SCOPE = TransactionScope(Isolation.SERIALIZABLE, LockMode.EXCLUSIVE)
# Availability: serializable snapshot, no locks taken.
AVAILABILITY_SCOPE = TransactionScope(Isolation.SERIALIZABLE, LockMode.NONE)
# Cancellation: default isolation, single row locked by id.
CANCELLATION_SCOPE = TransactionScope(Isolation.DEFAULT, LockMode.EXCLUSIVE)
READ_SCOPE = TransactionScope(Isolation.DEFAULT, LockMode.NONE)


class ReservationSession(Protocol):
    def find_by_id(self, reservation_id: str) -> Reservation | None:
        ...

    def find_by_id_and_status(
        self,
        reservation_id: str,
        status: ReservationStatus,
        *,
        lock: bool = False,
    ) -> Reservation | None:
        ...

    def find_overlapping(
        self,
        from_date: date,
        to_date: date,
        status: ReservationStatus,
        *,
        lock: bool = False,
    ) -> list[Reservation]:
        """Rows with ``status`` whose [checkin, checkout] meets [from_date, to_date].

        With ``lock=True`` the whole window is locked exclusively until the
        transaction ends, including dates that have no rows yet.
        """
        ...

    def save(self, reservation: Reservation) -> Reservation:
        """Insert when ``reservation.id`` is None, update otherwise."""
        ...


class ReservationStore(Protocol):
    def transaction(self, scope: TransactionScope) -> AbstractContextManager[ReservationSession]:
        ...
