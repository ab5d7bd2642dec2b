"""
Cleaner availability and conflict detection.

An existing booking blocks its own interval widened by the travel gap on
both sides. A candidate conflicts with it iff

    candidate.start < existing.end + gap  and  candidate.end > existing.start - gap

so with a zero gap, touching bookings do not conflict, and any positive gap
makes them conflict. The test is symmetric: swapping candidate and existing
gives the same answer for the same gap.

Intervals are absolute datetimes, so a booking that runs past midnight is
compared against the next day's bookings as well. ``BookingWorkflow`` runs
these checks under the cleaner's lock, after the channel rules.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Union

from booking_engine.config import settings
from booking_engine.schemas.booking_schema import Booking
from booking_engine.schemas.result_schema import Available, AvailabilityResult, SchedulingConflict
from booking_engine.utils import add_hours, combine, parse_date, parse_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyWorkload:
    """Hours booked for a cleaner on one date, including a prospective booking."""
    cleaner_id: str
    booking_date: date
    booked_hours: float
    shift_count: int
    total_hours: float
    overtime_hours: float


def _active_for(
    cleaner_id: str,
    booking_date: date,
    bookings: Iterable[Booking],
    exclude_booking_id: Optional[str] = None,
) -> list[Booking]:
    return sorted(
        (
            b for b in bookings
            if b.cleaner_id == cleaner_id
            and b.booking_date == booking_date
            and b.is_active
            and b.id != exclude_booking_id
        ),
        key=lambda b: (b.start_at, b.id),
    )


def intervals_conflict(
    start: datetime,
    end: datetime,
    other_start: datetime,
    other_end: datetime,
    gap_minutes: int,
) -> bool:
    gap = timedelta(minutes=gap_minutes)
    return start < other_end + gap and end > other_start - gap


def check_interval(
    cleaner_id: str,
    start_at: datetime,
    end_at: datetime,
    existing_bookings: Iterable[Booking],
    gap_minutes: int,
    exclude_booking_id: Optional[str] = None,
) -> AvailabilityResult:
    """
    Decide whether a cleaner can take ``[start_at, end_at)``.

    The window may cross midnight, and bookings on neighbouring dates are
    compared by their absolute start and end, so a late-evening booking
    blocks an early-morning one the next day once the gap is applied.

    Returns:
        ``Available`` or the ``SchedulingConflict`` with the earliest-starting
        conflicting booking.

    Raises:
        ValueError: On an empty window or a negative gap.
    """
    if end_at <= start_at:
        raise ValueError(f"end {end_at} must be after start {start_at}")
    if gap_minutes < 0:
        raise ValueError(f"gap_minutes must be >= 0, got {gap_minutes}")

    candidates = sorted(
        (
            b for b in existing_bookings
            if b.cleaner_id == cleaner_id and b.is_active and b.id != exclude_booking_id
        ),
        key=lambda b: (b.start_at, b.id),
    )
    for booking in candidates:
        if intervals_conflict(start_at, end_at, booking.start_at, booking.end_at, gap_minutes):
            logger.debug(
                "Cleaner %s conflict: %s-%s vs booking %s",
                cleaner_id, start_at, end_at, booking.id,
            )
            return SchedulingConflict(
                cleaner_id=cleaner_id,
                with_booking_id=booking.id,
                conflicting_start=booking.start_at,
                conflicting_end=booking.end_at,
                gap_minutes=gap_minutes,
            )

    return Available(
        cleaner_id=cleaner_id,
        booking_date=start_at.date(),
        start_time=start_at.time(),
        end_time=end_at.time(),
    )


def check_availability(
    cleaner_id: str,
    booking_date: Union[str, date],
    start_time: Union[str, time],
    end_time: Union[str, time],
    existing_bookings: Iterable[Booking],
    gap_minutes: int,
    exclude_booking_id: Optional[str] = None,
) -> AvailabilityResult:
    """
    Decide whether a cleaner can take the candidate window on one date.

    Args:
        cleaner_id: Cleaner being assigned.
        booking_date: Date of the candidate booking.
        start_time: Candidate start.
        end_time: Candidate end, after ``start_time`` on the same day.
        existing_bookings: Any bookings; other cleaners, other dates and
            cancelled bookings are ignored.
        gap_minutes: Travel buffer applied around each existing booking.
        exclude_booking_id: Booking to ignore, used when rescheduling it.

    Returns:
        ``Available`` or the ``SchedulingConflict`` with the earliest-starting
        conflicting booking.

    Raises:
        ValueError: On malformed times, an empty window or a negative gap.
            Windows that run past midnight go through ``check_interval``.
    """
    day = parse_date(booking_date)
    start_at = combine(day, parse_time(start_time))
    end_at = combine(day, parse_time(end_time))
    if end_at <= start_at:
        raise ValueError(f"end_time {end_time} must be after start_time {start_time}")
    same_day = _active_for(cleaner_id, day, existing_bookings, exclude_booking_id)
    return check_interval(cleaner_id, start_at, end_at, same_day, gap_minutes)


def find_available_slots(
    cleaner_id: str,
    booking_date: Union[str, date],
    duration_hours: float,
    existing_bookings: Iterable[Booking],
    gap_minutes: int,
    work_start: Union[str, time, None] = None,
    work_end: Union[str, time, None] = None,
    step_minutes: Optional[int] = None,
) -> list[time]:
    """Start times on a fixed grid where a booking of ``duration_hours`` fits."""
    if duration_hours <= 0:
        return []
    day = parse_date(booking_date)
    window_start = combine(day, parse_time(work_start or settings.scheduling.default_work_start))
    window_end = combine(day, parse_time(work_end or settings.scheduling.default_work_end))
    step = timedelta(minutes=step_minutes or settings.scheduling.slot_step_minutes)
    bookings = _active_for(cleaner_id, day, existing_bookings)

    slots: list[time] = []
    candidate = window_start
    while add_hours(candidate, duration_hours) <= window_end:
        end = add_hours(candidate, duration_hours)
        if not any(
            intervals_conflict(candidate, end, b.start_at, b.end_at, gap_minutes) for b in bookings
        ):
            slots.append(candidate.time())
        candidate += step
    return slots


def daily_workload(
    cleaner_id: str,
    booking_date: Union[str, date],
    existing_bookings: Iterable[Booking],
    extra_hours: float = 0.0,
    regular_hours: Optional[float] = None,
    exclude_booking_id: Optional[str] = None,
) -> DailyWorkload:
    """Booked hours, shift count and overtime for a cleaner on a date."""
    day = parse_date(booking_date)
    regular = settings.scheduling.regular_daily_hours if regular_hours is None else regular_hours
    bookings = _active_for(cleaner_id, day, existing_bookings, exclude_booking_id)
    booked = sum(b.duration_hours for b in bookings)
    total = booked + extra_hours
    return DailyWorkload(
        cleaner_id=cleaner_id,
        booking_date=day,
        booked_hours=booked,
        shift_count=len(bookings),
        total_hours=total,
        overtime_hours=max(total - regular, 0.0),
    )
