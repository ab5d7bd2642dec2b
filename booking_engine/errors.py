"""Exceptions for unrecoverable faults and configuration defects.

Expected business outcomes (no pricing coverage, scheduling conflicts,
channel rule violations) are never raised; they are returned as result
variants from ``booking_engine.schemas.result_schema``.
"""


class BookingEngineError(Exception):
    """Base class for booking engine errors."""


class ConfigurationIntegrityViolation(BookingEngineError):
    """Raised when a configuration write would break a data invariant."""

    def __init__(self, issues: list[str]) -> None:
        self.issues = list(issues)
        super().__init__("Configuration integrity violation: " + "; ".join(self.issues))


class OverlapConstraintViolation(BookingEngineError):
    """Raised by the store when an insert would double-book a cleaner."""

    def __init__(self, cleaner_id: str, booking_id: str, existing_id: str) -> None:
        self.cleaner_id = cleaner_id
        self.booking_id = booking_id
        self.existing_id = existing_id
        super().__init__(
            f"Booking {booking_id} overlaps booking {existing_id} for cleaner {cleaner_id}"
        )


class InvalidStatusTransition(BookingEngineError):
    """Raised when a booking status change is not allowed."""


class BookingNotFoundError(BookingEngineError):
    """Raised when a booking id is unknown to the store."""
