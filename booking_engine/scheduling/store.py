"""
In-memory booking store with per-cleaner write serialization.

The store plays the persistence role: it answers "non-cancelled bookings
for cleaner X on date D" and creates bookings atomically. Two guarantees
make concurrent booking safe:

1. ``cleaner_lock`` is a single-writer section per cleaner. The workflow
   re-reads and re-checks availability inside it before inserting.
2. ``insert`` enforces an exclusion constraint on its own: no two
   non-cancelled bookings of one cleaner may overlap. This is the backstop
   if a caller skips the lock.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from threading import Lock, RLock
from typing import Iterator, Optional

from booking_engine.errors import (
    BookingNotFoundError,
    InvalidStatusTransition,
    OverlapConstraintViolation,
)
from booking_engine.scheduling.availability import intervals_conflict
from booking_engine.schemas.booking_schema import Booking, BookingStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


class InMemoryBookingStore:
    """Thread-safe booking table keyed by booking id."""

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._table_lock = Lock()
        self._locks_guard = Lock()
        self._cleaner_locks: dict[str, RLock] = {}

    @contextmanager
    def cleaner_lock(self, cleaner_id: str) -> Iterator[None]:
        """Serialize writers for one cleaner."""
        with self._locks_guard:
            lock = self._cleaner_locks.setdefault(cleaner_id, RLock())
        with lock:
            yield

    def get(self, booking_id: str) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def require(self, booking_id: str) -> Booking:
        booking = self._bookings.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def all(self) -> list[Booking]:
        with self._table_lock:
            return list(self._bookings.values())

    def bookings_for(self, cleaner_id: str, booking_date: date) -> list[Booking]:
        """Non-cancelled bookings for a cleaner on a date, by start time."""
        with self._table_lock:
            rows = [
                b for b in self._bookings.values()
                if b.cleaner_id == cleaner_id and b.booking_date == booking_date and b.is_active
            ]
        return sorted(rows, key=lambda b: b.start_at)

    def bookings_between(self, cleaner_id: str, start_at: datetime, end_at: datetime) -> list[Booking]:
        """Non-cancelled bookings for a cleaner intersecting ``[start_at, end_at)``, any date."""
        with self._table_lock:
            rows = [
                b for b in self._bookings.values()
                if b.cleaner_id == cleaner_id
                and b.is_active
                and b.start_at < end_at
                and b.end_at > start_at
            ]
        return sorted(rows, key=lambda b: b.start_at)

    def bookings_on(self, booking_date: date) -> list[Booking]:
        with self._table_lock:
            rows = [b for b in self._bookings.values() if b.booking_date == booking_date and b.is_active]
        return sorted(rows, key=lambda b: (b.cleaner_id, b.start_at))

    def _check_exclusion(self, booking: Booking) -> None:
        if not booking.is_active:
            return
        for other in self._bookings.values():
            if (
                other.id != booking.id
                and other.cleaner_id == booking.cleaner_id
                and other.is_active
                and intervals_conflict(booking.start_at, booking.end_at, other.start_at, other.end_at, 0)
            ):
                raise OverlapConstraintViolation(booking.cleaner_id, booking.id, other.id)

    def insert(self, booking: Booking) -> Booking:
        """Create a booking row.

        Raises:
            ValueError: If the id already exists.
            OverlapConstraintViolation: If it overlaps another active booking
                of the same cleaner.
        """
        with self._table_lock:
            if booking.id in self._bookings:
                raise ValueError(f"Booking {booking.id} already exists")
            self._check_exclusion(booking)
            self._bookings[booking.id] = booking
        logger.info(
            "Booking stored: %s cleaner=%s %s %s (%sh) status=%s",
            booking.id, booking.cleaner_id, booking.booking_date,
            booking.start_time, booking.duration_hours, booking.status.value,
        )
        return booking

    def set_status(self, booking_id: str, status: BookingStatus) -> Booking:
        """Move a booking to a new status; the stored price is untouched."""
        with self._table_lock:
            current = self.require(booking_id)
            if status not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidStatusTransition(
                    f"Booking {booking_id} cannot go from '{current.status.value}' to '{status.value}'"
                )
            updated = current.model_copy(update={"status": status})
            self._bookings[booking_id] = updated
        logger.info("Booking %s: %s -> %s", booking_id, current.status.value, status.value)
        return updated

    def move(
        self,
        booking_id: str,
        booking_date: date,
        start_time: time,
        time_period_code: Optional[str] = None,
    ) -> Booking:
        """Reschedule a booking in place, keeping price and status."""
        with self._table_lock:
            current = self.require(booking_id)
            if current.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
                raise InvalidStatusTransition(
                    f"Booking {booking_id} in status '{current.status.value}' cannot be rescheduled"
                )
            moved = current.model_copy(update={
                "booking_date": booking_date,
                "start_time": start_time,
                "time_period_code": time_period_code,
            })
            self._check_exclusion(moved)
            self._bookings[booking_id] = moved
        logger.info("Booking %s moved to %s %s", booking_id, booking_date, start_time)
        return moved

    def reset(self) -> None:
        """Clear all bookings. Used by test fixtures for isolation."""
        with self._table_lock:
            self._bookings.clear()
