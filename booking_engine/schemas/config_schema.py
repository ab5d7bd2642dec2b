"""Settings records: time periods, pricing, special areas, gap and channel rules."""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from booking_engine.utils import normalize_text


class TimePeriod(BaseModel):
    """A named wall-clock window of the working day, e.g. Shift 1 08:00-10:00."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    start_time: time
    end_time: time
    display_order: int = 0

    @model_validator(mode="after")
    def _start_before_end(self) -> "TimePeriod":
        if self.start_time >= self.end_time:
            raise ValueError(
                f"Time period {self.code}: start_time {self.start_time} must be before end_time {self.end_time}"
            )
        return self

    def contains(self, at: time) -> bool:
        return self.start_time <= at < self.end_time


def _as_datetime(value):
    """Accept bare dates (midnight) for effective bounds."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and len(value.strip()) == 10:
        return datetime.combine(date.fromisoformat(value.strip()), time.min)
    return value


class ChannelPricingRule(BaseModel):
    """Hourly rate, materials fee and tax for one channel over an effective interval."""

    model_config = ConfigDict(frozen=True)

    id: str
    channel_id: str
    hourly_rate_per_cleaner: Decimal = Field(ge=0)
    materials_price_per_cleaner: Decimal = Field(default=Decimal("0"), ge=0)
    tax_rate: Decimal = Field(default=Decimal("0"), ge=0, le=1)
    currency: str = "QAR"
    is_active: bool = True
    effective_from: datetime
    effective_to: Optional[datetime] = None

    @field_validator("effective_from", "effective_to", mode="before")
    @classmethod
    def _normalize_bounds(cls, value):
        return _as_datetime(value)

    @model_validator(mode="after")
    def _interval_not_empty(self) -> "ChannelPricingRule":
        if self.effective_to is not None and self.effective_to <= self.effective_from:
            raise ValueError(
                f"Pricing rule {self.id}: effective_to must be after effective_from"
            )
        return self

    def covers(self, instant: datetime) -> bool:
        """Half-open containment; an open effective_to means current."""
        if instant < self.effective_from:
            return False
        return self.effective_to is None or instant < self.effective_to

    def overlaps(self, other: "ChannelPricingRule") -> bool:
        self_end = self.effective_to or datetime.max
        other_end = other.effective_to or datetime.max
        return self.effective_from < other_end and other.effective_from < self_end


class SpecialArea(BaseModel):
    """A named zone matched against booking addresses by keyword."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    name: str
    search_keywords: frozenset[str] = Field(default_factory=frozenset)
    is_active: bool = True

    @field_validator("search_keywords", mode="before")
    @classmethod
    def _normalize_keywords(cls, value):
        if isinstance(value, str):
            value = [value]
        return frozenset(normalize_text(k) for k in value if k and k.strip())

    def matches(self, address: str) -> bool:
        normalized = normalize_text(address)
        return any(keyword in normalized for keyword in self.search_keywords)


class SpecialAreaPricing(BaseModel):
    """Per-channel pricing override for a special area.

    Fields left empty fall back to the channel's covering pricing rule.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    channel_id: str
    area_code: str
    hourly_rate_per_cleaner: Decimal = Field(ge=0)
    materials_price_per_cleaner: Optional[Decimal] = Field(default=None, ge=0)
    tax_rate: Optional[Decimal] = Field(default=None, ge=0, le=1)
    currency: Optional[str] = None
    is_active: bool = True


class GapRule(BaseModel):
    """Travel buffer between consecutive bookings of one cleaner.

    A rule without ``channel_id`` applies to every channel. The duration
    range is half-open: ``min_booking_hours <= hours < max_booking_hours``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    channel_id: Optional[str] = None
    min_booking_hours: float = Field(default=0.0, ge=0)
    max_booking_hours: Optional[float] = None
    gap_minutes: int = Field(ge=0)
    priority: int = 0
    is_active: bool = True

    @model_validator(mode="after")
    def _range_not_empty(self) -> "GapRule":
        if self.max_booking_hours is not None and self.max_booking_hours <= self.min_booking_hours:
            raise ValueError(
                f"Gap rule {self.id}: max_booking_hours must exceed min_booking_hours"
            )
        return self

    def applies_to(self, channel_id: str, duration_hours: float) -> bool:
        if not self.is_active:
            return False
        if self.channel_id is not None and self.channel_id != channel_id:
            return False
        if duration_hours < self.min_booking_hours:
            return False
        return self.max_booking_hours is None or duration_hours < self.max_booking_hours


class ChannelBusinessRule(BaseModel):
    """Booking limits that apply to one intake channel."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    work_start_time: time = time(8, 0)
    work_end_time: time = time(20, 0)
    min_advance_hours: float = Field(default=0.0, ge=0)
    max_advance_days: int = Field(default=90, ge=0)
    min_shift_hours: float = Field(default=1.0, gt=0)
    max_shift_hours: float = Field(default=12.0, gt=0)
    max_daily_hours_per_cleaner: float = Field(default=12.0, gt=0)
    max_shifts_per_day_per_cleaner: int = Field(default=4, ge=1)
    allow_past_booking: bool = False
    allow_same_day_booking: bool = True
    # carried for the payments flow; not enforced when booking
    require_payment_upfront: bool = False
    require_manual_confirmation: bool = False
    is_active: bool = True

    @model_validator(mode="after")
    def _check_bounds(self) -> "ChannelBusinessRule":
        if self.work_start_time >= self.work_end_time:
            raise ValueError(f"Channel {self.channel_id}: work window is empty")
        if self.min_shift_hours > self.max_shift_hours:
            raise ValueError(f"Channel {self.channel_id}: min_shift_hours exceeds max_shift_hours")
        return self
