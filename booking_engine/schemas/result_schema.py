"""Typed outcomes for expected business conditions.

Resolvers return these instead of raising: a missing pricing rule or a
double-booked cleaner is a normal answer the booking workflow must handle.
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union

from booking_engine.schemas.booking_schema import PriceBreakdown
from booking_engine.schemas.config_schema import TimePeriod


@dataclass(frozen=True)
class NoPricingCoverage:
    """No active rule covers the channel at the booking instant."""
    channel_id: str
    instant: datetime
    area_code: Optional[str] = None

    @property
    def message(self) -> str:
        return f"No pricing rule covers channel '{self.channel_id}' at {self.instant.isoformat()}."


@dataclass(frozen=True)
class InvalidDuration:
    duration_hours: float

    @property
    def message(self) -> str:
        return f"Booking duration must be positive, got {self.duration_hours} hours."


@dataclass(frozen=True)
class Available:
    cleaner_id: str
    booking_date: date
    start_time: time
    end_time: time


@dataclass(frozen=True)
class SchedulingConflict:
    """The candidate overlaps an existing booking once gaps are applied."""
    cleaner_id: str
    with_booking_id: str
    conflicting_start: datetime
    conflicting_end: datetime
    gap_minutes: int

    @property
    def message(self) -> str:
        return (
            f"Cleaner {self.cleaner_id} is busy with booking {self.with_booking_id} "
            f"({self.conflicting_start:%H:%M}-{self.conflicting_end:%H:%M}, "
            f"{self.gap_minutes} min travel gap)."
        )


@dataclass(frozen=True)
class Unclassified:
    """The time falls in a gap of the time period catalog. Informational."""
    at: time


@dataclass(frozen=True)
class ChannelRuleViolation:
    channel_id: str
    rule: str
    detail: str

    @property
    def message(self) -> str:
        return f"Channel '{self.channel_id}' rule '{self.rule}' violated: {self.detail}"


PriceResult = Union[PriceBreakdown, NoPricingCoverage, InvalidDuration]
AvailabilityResult = Union[Available, SchedulingConflict]
ClassificationResult = Union[TimePeriod, Unclassified]
