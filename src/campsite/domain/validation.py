"""Booking rules for a new reservation's dates.

Rules are checked in order and the first violation wins. Each rule returns
None when satisfied, or the InvalidDatesReason describing the violation.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Callable

from campsite.domain.errors import InvalidDatesReason

MAX_STAY_DAYS = 3
MIN_STAY_DAYS = 1
BOOKING_HORIZON_MONTHS = 1

Rule = Callable[[date, date, date], "InvalidDatesReason | None"]


def add_months(day: date, months: int) -> date:
    """Shift a date by calendar months, clamping to the month's last day.

    >>> add_months(date(2024, 1, 31), 1)
    datetime.date(2024, 2, 29)
    """
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _checkout_not_before_checkin(checkin: date, checkout: date, today: date) -> InvalidDatesReason | None:
    if checkin > checkout:
        return InvalidDatesReason.CHECKOUT_BEFORE_CHECKIN
    return None


def _stay_not_too_long(checkin: date, checkout: date, today: date) -> InvalidDatesReason | None:
    if (checkout - checkin).days > MAX_STAY_DAYS:
        return InvalidDatesReason.STAY_TOO_LONG
    return None


def _stay_not_too_short(checkin: date, checkout: date, today: date) -> InvalidDatesReason | None:
    if (checkout - checkin).days < MIN_STAY_DAYS:
        return InvalidDatesReason.STAY_TOO_SHORT
    return None


def _checkin_in_future(checkin: date, checkout: date, today: date) -> InvalidDatesReason | None:
    # Same-day arrival is not bookable.
    if checkin <= today:
        return InvalidDatesReason.CHECKIN_NOT_IN_FUTURE
    return None


def _checkout_within_horizon(checkin: date, checkout: date, today: date) -> InvalidDatesReason | None:
    if checkout >= add_months(today, BOOKING_HORIZON_MONTHS):
        return InvalidDatesReason.CHECKOUT_TOO_FAR
    return None


RULES: tuple[Rule, ...] = (
    _checkout_not_before_checkin,
    _stay_not_too_long,
    _stay_not_too_short,
    _checkin_in_future,
    _checkout_within_horizon,
)


def check_stay_dates(checkin: date, checkout: date, today: date) -> InvalidDatesReason | None:
    """Run every booking rule in order and return the first violation, if any."""
    for rule in RULES:
        reason = rule(checkin, checkout, today)
        if reason is not None:
            return reason
    return None
