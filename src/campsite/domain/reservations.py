"""Reservation record and lifecycle states."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum


class ReservationStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Reservation:
    """A stay on the campsite.

    Attributes:
        checkin: First night of the stay (inclusive).
        checkout: Departure day (exclusive, that night is not occupied).
        id: Assigned by the store on insert, None for a candidate.
        status: ACTIVE until cancelled. CANCELLED is terminal.
        created_at: Set by the store on insert.
        updated_at: Set by the store on every save.
    """

    checkin: date
    checkout: date
    id: str | None = None
    status: ReservationStatus = ReservationStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def nights(self) -> int:
        return (self.checkout - self.checkin).days

    def cancelled(self) -> Reservation:
        """Return a copy in CANCELLED status.

        Raises:
            ValueError: If the reservation is already cancelled.
        """
        if self.status is not ReservationStatus.ACTIVE:
            raise ValueError(
                f"Reservation {self.id} has status '{self.status.value}', expected 'ACTIVE'"
            )
        return replace(self, status=ReservationStatus.CANCELLED)
