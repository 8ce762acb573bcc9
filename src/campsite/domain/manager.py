"""Reservation manager - validation, conflict locking and lifecycle.

create_reservation runs:
validate → open serializable transaction → lock conflict set → re-read it →
compute free dates → persist ACTIVE or reject → commit.

Validation happens before any transaction is opened. Operations running
under serializable isolation are retried from scratch on
TransientStorageError, up to ``max_attempts`` attempts.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, TypeVar

from campsite.domain.availability import get_available_dates, stay_dates
from campsite.domain.errors import (
    InvalidDatesError,
    InvalidDatesReason,
    ReservationNotFoundError,
    TransientStorageError,
)
from campsite.domain.reservations import Reservation, ReservationStatus
from campsite.domain.store import (
    AVAILABILITY_SCOPE,
    BOOKING_SCOPE,
    CANCELLATION_SCOPE,
    READ_SCOPE,
    ReservationStore,
)
from campsite.domain.validation import check_stay_dates
from campsite.observability.correlation import correlation_scope

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReservationManager:
    """Sole writer of reservation rows.

    Args:
        store: Transactional reservation store.
        today: Clock returning the current calendar date.
        max_attempts: Attempts for serializable operations (>= 1).
    """

    def __init__(
        self,
        store: ReservationStore,
        *,
        today: Callable[[], date] = date.today,
        max_attempts: int = 3,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._store = store
        self._today = today
        self._max_attempts = max_attempts

    def _retrying(self, operation: str, fn: Callable[[], T]) -> T:
        attempt = 1
        while True:
            try:
                return fn()
            except TransientStorageError as exc:
                if attempt >= self._max_attempts:
                    raise
                logger.warning(
                    "transient storage failure, retrying",
                    extra={
                        "extra_fields": {
                            "operation": operation,
                            "attempt": attempt,
                            "max_attempts": self._max_attempts,
                            "error": str(exc),
                        },
                    },
                )
                attempt += 1

    def create_reservation(
        self,
        checkin: date,
        checkout: date,
        *,
        correlation_id: str | None = None,
    ) -> Reservation:
        """Book [checkin, checkout) if the dates pass every rule and are free.

        Raises:
            InvalidDatesError: A booking rule is broken or a night is taken.
            TransientStorageError: Still conflicting after every attempt.
            StorageError: Unexpected storage failure.
        """
        with correlation_scope(correlation_id):
            return self._retrying(
                "create_reservation",
                lambda: self._create_once(checkin, checkout),
            )

    def _create_once(self, checkin: date, checkout: date) -> Reservation:
        reason = check_stay_dates(checkin, checkout, self._today())
        if reason is not None:
            raise InvalidDatesError(reason)

        wanted = list(stay_dates(checkin, checkout))

        with self._store.transaction(BOOKING_SCOPE) as session:
            conflict_set = session.find_overlapping(
                checkin,
                checkout,
                ReservationStatus.ACTIVE,
                lock=BOOKING_SCOPE.exclusive,
            )
            free = set(get_available_dates(checkin, checkout - timedelta(days=1), conflict_set))

            if not free.issuperset(wanted):
                logger.warning(
                    "dates not available",
                    extra={
                        "extra_fields": {
                            "requested_checkin": checkin.isoformat(),
                            "requested_checkout": checkout.isoformat(),
                            "conflicting_reservation_ids": [r.id for r in conflict_set],
                        },
                    },
                )
                raise InvalidDatesError(InvalidDatesReason.NOT_AVAILABLE)

            reservation = session.save(
                Reservation(checkin=checkin, checkout=checkout, status=ReservationStatus.ACTIVE)
            )

        logger.info(
            "reservation created",
            extra={
                "extra_fields": {
                    "reservation_id": reservation.id,
                    "checkin": checkin.isoformat(),
                    "checkout": checkout.isoformat(),
                },
            },
        )
        return reservation

    def get_reservation(self, reservation_id: str) -> Reservation:
        """Fetch a reservation in any status.

        Raises:
            ReservationNotFoundError: If no reservation has that id.
        """
        with self._store.transaction(READ_SCOPE) as session:
            reservation = session.find_by_id(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    def cancel_reservation(
        self,
        reservation_id: str,
        *,
        correlation_id: str | None = None,
    ) -> Reservation:
        """Cancel an ACTIVE reservation. Dates are not re-validated.

        Raises:
            ReservationNotFoundError: Unknown id, or already cancelled.
        """
        with correlation_scope(correlation_id):
            with self._store.transaction(CANCELLATION_SCOPE) as session:
                reservation = session.find_by_id_and_status(
                    reservation_id,
                    ReservationStatus.ACTIVE,
                    lock=CANCELLATION_SCOPE.exclusive,
                )
                if reservation is None:
                    raise ReservationNotFoundError(reservation_id)
                cancelled = session.save(reservation.cancelled())

            logger.info(
                "reservation cancelled",
                extra={"extra_fields": {"reservation_id": reservation_id}},
            )
            return cancelled

    def get_availabilities(self, start_date: date, end_date: date) -> list[date]:
        """Free dates of the closed window [start_date, end_date], ascending.

        Nothing is locked: a date reported free may be booked by someone else
        before the caller books it. That race is settled by create_reservation.
        """

        def _read() -> list[date]:
            with self._store.transaction(AVAILABILITY_SCOPE) as session:
                reservations = session.find_overlapping(
                    start_date,
                    end_date,
                    ReservationStatus.ACTIVE,
                    lock=AVAILABILITY_SCOPE.exclusive,
                )
            return get_available_dates(start_date, end_date, reservations)

        with correlation_scope():
            return self._retrying("get_availabilities", _read)
