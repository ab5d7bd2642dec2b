"""Booking records, booking requests and price breakdowns."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from booking_engine.utils import add_hours, combine


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PricingMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class Booking(BaseModel):
    """A committed booking for one cleaner.

    Frozen: status changes produce a new record via ``model_copy`` and the
    price fixed at booking time is carried over unchanged.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    cleaner_id: str
    channel_id: str
    booking_date: date
    start_time: time
    duration_hours: float = Field(gt=0)
    area_code: Optional[str] = None
    time_period_code: Optional[str] = None
    cleaner_count: int = Field(default=1, ge=1)
    with_materials: bool = False
    final_price: Decimal = Decimal("0")
    currency: str = "QAR"
    status: BookingStatus = BookingStatus.CONFIRMED
    pricing_mode: PricingMode = PricingMode.AUTO
    manual_price_reason: Optional[str] = None

    @property
    def start_at(self) -> datetime:
        return combine(self.booking_date, self.start_time)

    @property
    def end_at(self) -> datetime:
        return add_hours(self.start_at, self.duration_hours)

    @property
    def end_time(self) -> time:
        return self.end_at.time()

    @property
    def is_active(self) -> bool:
        return self.status != BookingStatus.CANCELLED


class BookingRequest(BaseModel):
    """Validated booking request data."""

    cleaner_id: str
    channel_id: str
    booking_date: date
    start_time: time
    duration_hours: float
    cleaner_count: int = 1
    with_materials: bool = False
    area_code: Optional[str] = None
    address: Optional[str] = None
    discount_amount: Decimal = Field(default=Decimal("0"), ge=0)
    manual_price: Optional[Decimal] = Field(default=None, ge=0)
    manual_price_reason: Optional[str] = None

    @model_validator(mode="after")
    def _manual_price_needs_reason(self) -> "BookingRequest":
        if self.manual_price is not None and not (self.manual_price_reason or "").strip():
            raise ValueError("manual_price requires a manual_price_reason")
        return self

    @property
    def start_at(self) -> datetime:
        return combine(self.booking_date, self.start_time)

    @property
    def end_at(self) -> datetime:
        return add_hours(self.start_at, self.duration_hours)


class PriceBreakdown(BaseModel):
    """Price resolution result.

    Amounts are rounded to the currency's minor unit and ``total`` equals
    ``base + materials + tax`` exactly.
    """

    model_config = ConfigDict(frozen=True)

    channel_id: str
    rule_id: Optional[str] = None
    area_code: Optional[str] = None
    area_pricing_id: Optional[str] = None
    hourly_rate: Decimal
    duration_hours: float
    cleaner_count: int
    base: Decimal
    materials: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    currency: str
