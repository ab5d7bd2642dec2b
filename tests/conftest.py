"""Shared test fixtures and helpers."""

from datetime import date, datetime, time
from decimal import Decimal
from itertools import count
from typing import Optional

import pytest

from booking_engine.rules.snapshot import ConfigSnapshot
from booking_engine.scheduling.store import InMemoryBookingStore
from booking_engine.scheduling.workflow import BookingWorkflow
from booking_engine.schemas.booking_schema import Booking, BookingStatus
from booking_engine.schemas.config_schema import (
    ChannelBusinessRule,
    ChannelPricingRule,
    GapRule,
    SpecialArea,
    SpecialAreaPricing,
    TimePeriod,
)

BOOKING_DAY = date(2025, 3, 18)
NOW = datetime(2025, 3, 10, 9, 0)


def make_booking(
    booking_id: str = "BK-1",
    cleaner_id: str = "C-1",
    start: str = "10:00",
    hours: float = 2.0,
    status: BookingStatus = BookingStatus.CONFIRMED,
    booking_date: date = BOOKING_DAY,
    channel_id: str = "staff",
    final_price: str = "50.00",
) -> Booking:
    """Helper to create a Booking with sensible defaults."""
    return Booking(
        id=booking_id,
        cleaner_id=cleaner_id,
        channel_id=channel_id,
        booking_date=booking_date,
        start_time=start,
        duration_hours=hours,
        final_price=Decimal(final_price),
        status=status,
    )


def make_pricing_rule(
    rule_id: str = "PR-1",
    channel_id: str = "staff",
    rate: str = "25",
    materials: str = "10",
    tax: str = "0.05",
    effective_from="2025-01-01",
    effective_to=None,
    is_active: bool = True,
) -> ChannelPricingRule:
    return ChannelPricingRule(
        id=rule_id,
        channel_id=channel_id,
        hourly_rate_per_cleaner=Decimal(rate),
        materials_price_per_cleaner=Decimal(materials),
        tax_rate=Decimal(tax),
        effective_from=effective_from,
        effective_to=effective_to,
        is_active=is_active,
    )


def make_periods() -> list[TimePeriod]:
    return [
        TimePeriod(code="S1", name="Shift 1", start_time=time(8), end_time=time(10), display_order=1),
        TimePeriod(code="S2", name="Shift 2", start_time=time(10), end_time=time(12), display_order=2),
        TimePeriod(code="S3", name="Shift 3", start_time=time(14), end_time=time(18), display_order=3),
    ]


def make_snapshot(
    channel_rules: Optional[list[ChannelBusinessRule]] = None,
    gap_rules: Optional[list[GapRule]] = None,
    **kwargs,
) -> ConfigSnapshot:
    """A valid snapshot: staff channel at 25 QAR/h, one special area, 30 min gaps."""
    defaults = dict(
        time_periods=make_periods(),
        pricing_rules=[
            make_pricing_rule("PR-OLD", rate="20", effective_from="2024-01-01", effective_to="2025-01-01"),
            make_pricing_rule("PR-CUR", rate="25", effective_from="2025-01-01"),
        ],
        special_areas=[
            SpecialArea(id="A-1", code="PEARL", name="The Pearl", search_keywords=["Pearl", "porto arabia"]),
            SpecialArea(id="A-2", code="LUSAIL", name="Lusail", search_keywords=["lusail"]),
        ],
        area_pricing=[
            SpecialAreaPricing(
                id="AP-1", channel_id="staff", area_code="PEARL", hourly_rate_per_cleaner=Decimal("35"),
            ),
        ],
        gap_rules=gap_rules if gap_rules is not None else [GapRule(id="G-1", gap_minutes=30)],
        channel_rules=channel_rules or [],
    )
    defaults.update(kwargs)
    return ConfigSnapshot.build(**defaults)


@pytest.fixture
def snapshot():
    return make_snapshot()


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def workflow(store, snapshot):
    ids = count(1)
    return BookingWorkflow(
        store,
        snapshot,
        id_factory=lambda: f"BK-{next(ids):04d}",
        clock=lambda: NOW,
    )
