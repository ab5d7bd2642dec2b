"""
Timeline projection of committed bookings onto a visible hour range.

Each booking becomes an offset and a width expressed as fractions of the
visible window (08:00-20:00 by default). Bookings running past either edge
are clipped to the window instead of dropped, so a partial shift stays on
screen. This is a display transform only; it never decides availability.

Usage:
    projection = project(bookings)
    for entry in projection:
        left, width = entry.as_percentages()
"""

import logging
from dataclasses import dataclass
from datetime import time
from typing import Iterable, Iterator, Optional, Union

from booking_engine.config import settings
from booking_engine.schemas.booking_schema import Booking
from booking_engine.utils import minutes_of_day, parse_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimelineEntry:
    booking_id: str
    cleaner_id: str
    offset_fraction: float
    width_fraction: float
    clipped: bool = False

    def as_percentages(self) -> tuple[float, float]:
        return self.offset_fraction * 100.0, self.width_fraction * 100.0


def _clamp(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class TimelineProjection:
    """
    Lazy, restartable sequence of ``TimelineEntry`` ordered by start time.

    Entries are computed on each iteration from the stored bookings, so
    iterating twice yields identical results.
    """

    def __init__(
        self,
        bookings: Iterable[Booking],
        visible_start: Union[str, time],
        visible_end: Union[str, time],
    ) -> None:
        self._start = minutes_of_day(parse_time(visible_start))
        self._end = minutes_of_day(parse_time(visible_end))
        if self._end <= self._start:
            raise ValueError(f"visible_end {visible_end} must be after visible_start {visible_start}")
        self._bookings: tuple[Booking, ...] = tuple(
            sorted((b for b in bookings if b.is_active), key=lambda b: (b.start_at, b.id))
        )

    def __len__(self) -> int:
        return len(self._bookings)

    def __iter__(self) -> Iterator[TimelineEntry]:
        span = float(self._end - self._start)
        for booking in self._bookings:
            start = minutes_of_day(booking.start_time)
            end = start + booking.duration_hours * 60
            raw_offset = (start - self._start) / span
            raw_end = (end - self._start) / span
            offset = _clamp(raw_offset)
            width = _clamp(raw_end) - offset
            yield TimelineEntry(
                booking_id=booking.id,
                cleaner_id=booking.cleaner_id,
                offset_fraction=offset,
                width_fraction=width,
                clipped=raw_offset < 0.0 or raw_end > 1.0,
            )


def project(
    bookings: Iterable[Booking],
    visible_start: Union[str, time, None] = None,
    visible_end: Union[str, time, None] = None,
) -> TimelineProjection:
    """Project bookings onto the visible window; cancelled ones are skipped."""
    return TimelineProjection(
        bookings,
        visible_start or settings.timeline.visible_start,
        visible_end or settings.timeline.visible_end,
    )


def project_by_cleaner(
    bookings: Iterable[Booking],
    cleaner_ids: Optional[Iterable[str]] = None,
    visible_start: Union[str, time, None] = None,
    visible_end: Union[str, time, None] = None,
) -> dict[str, TimelineProjection]:
    """One projection per cleaner row; cleaners without bookings get an empty row."""
    bookings = list(bookings)
    ids = list(cleaner_ids) if cleaner_ids is not None else sorted({b.cleaner_id for b in bookings})
    return {
        cleaner_id: project(
            [b for b in bookings if b.cleaner_id == cleaner_id], visible_start, visible_end
        )
        for cleaner_id in ids
    }
