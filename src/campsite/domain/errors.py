"""Error taxonomy for the reservation core.

- InvalidDatesError: client-correctable date problems (never retried).
- ReservationNotFoundError: unknown id, or not ACTIVE when cancelling.
- TransientStorageError: lock timeout / deadlock / serialization failure.
  Safe to retry the whole operation from scratch.
- StorageError: any other storage failure, surfaced as-is.
"""

from enum import Enum


class InvalidDatesReason(str, Enum):
    """Human-readable reason attached to an InvalidDatesError."""

    CHECKOUT_BEFORE_CHECKIN = "The checkout date should be after the checkin date."
    STAY_TOO_LONG = "The checkout date cannot be more than 3 days after the checkin date."
    STAY_TOO_SHORT = "The checkout date should be at least a day after the checkin date."
    CHECKIN_NOT_IN_FUTURE = "The checkin date needs to be at least one day in the future."
    CHECKOUT_TOO_FAR = "The checkout date cannot be more than a month in the future."
    NOT_AVAILABLE = "The dates selected are not available."


class CampsiteError(Exception):
    """Base class for all reservation core errors."""

    pass


class InvalidDatesError(CampsiteError):
    """Raised when requested dates break a booking rule or are taken."""

    def __init__(self, reason: InvalidDatesReason) -> None:
        self.reason = reason
        super().__init__(reason.value)


class ReservationNotFoundError(CampsiteError):
    """Raised when the reservation does not exist."""

    def __init__(self, reservation_id: str) -> None:
        self.reservation_id = reservation_id
        super().__init__(f"Reservation {reservation_id} not found")


class StorageError(CampsiteError):
    """Raised on unexpected storage failures."""

    pass


class TransientStorageError(StorageError):
    """Raised when the store aborts a transaction that may succeed on retry."""

    pass
