"""Availability calculation.

Reservations occupy the half-open range [checkin, checkout): the departure
day is free for the next guest. Availability queries use a closed window
[start_date, end_date].
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Iterator, Protocol

_ONE_DAY = timedelta(days=1)


class DateRange(Protocol):
    checkin: date
    checkout: date


def stay_dates(checkin: date, checkout: date) -> Iterator[date]:
    """Yield every night of a stay, checkin up to the day before checkout."""
    current = checkin
    while current < checkout:
        yield current
        current += _ONE_DAY


def occupied_dates(reservations: Iterable[DateRange]) -> set[date]:
    """Union of the nights occupied by the given reservations."""
    occupied: set[date] = set()
    for reservation in reservations:
        occupied.update(stay_dates(reservation.checkin, reservation.checkout))
    return occupied


def get_available_dates(
    start_date: date,
    end_date: date,
    reservations: Iterable[DateRange],
) -> list[date]:
    """Return the free dates of [start_date, end_date], ascending.

    An inverted window (start_date > end_date) yields an empty list.
    """
    occupied = occupied_dates(reservations)
    return [
        day
        for day in stay_dates(start_date, end_date + _ONE_DAY)
        if day not in occupied
    ]
