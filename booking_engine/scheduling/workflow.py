"""
Booking workflow: price, classify, check and commit a booking.

A request is priced against the configuration snapshot, its start time is
classified into a time period, and the travel gap for its channel and
duration is looked up. Inside the cleaner's lock the channel rules are
evaluated first, then the cleaner's bookings around the candidate window
are read and checked, so at most one concurrent writer can see a slot as
free. Windows may run past midnight. The store's exclusion constraint
backs this up.

Expected outcomes (no pricing coverage, conflicts, channel rule
violations) come back as a failed ``BookingOutcome``; only faults raise.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Callable, Optional, Union

from booking_engine.errors import OverlapConstraintViolation
from booking_engine.logging_context import get_request_logger, set_request_id
from booking_engine.rules.channel_rules import evaluate_channel_rules
from booking_engine.rules.pricing import resolve_price
from booking_engine.rules.snapshot import ConfigSnapshot
from booking_engine.scheduling.availability import (
    DailyWorkload,
    check_interval,
    daily_workload,
    find_available_slots,
)
from booking_engine.scheduling.store import InMemoryBookingStore
from booking_engine.schemas.booking_schema import (
    Booking,
    BookingRequest,
    BookingStatus,
    PriceBreakdown,
    PricingMode,
)
from booking_engine.schemas.config_schema import TimePeriod
from booking_engine.schemas.result_schema import (
    AvailabilityResult,
    ChannelRuleViolation,
    InvalidDuration,
    NoPricingCoverage,
    PriceResult,
    SchedulingConflict,
)
from booking_engine.utils import add_hours, combine, parse_date, parse_time, round_money

logger = get_request_logger(__name__)

Failure = Union[NoPricingCoverage, InvalidDuration, SchedulingConflict, ChannelRuleViolation]


@dataclass(frozen=True)
class BookingOutcome:
    """Result of create_booking or reschedule_booking."""
    success: bool
    message: str
    booking: Optional[Booking] = None
    price: Optional[PriceBreakdown] = None
    time_period: Optional[TimePeriod] = None
    workload: Optional[DailyWorkload] = None
    failure: Optional[Failure] = None


def _new_booking_id() -> str:
    return f"BK-{uuid.uuid4().hex[:6].upper()}"


class BookingWorkflow:
    """Coordinates pricing, availability and the store for booking writes."""

    def __init__(
        self,
        store: InMemoryBookingStore,
        snapshot: Union[ConfigSnapshot, Callable[[], ConfigSnapshot]],
        id_factory: Callable[[], str] = _new_booking_id,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._snapshot_source = snapshot
        self._id_factory = id_factory
        self._clock = clock

    @property
    def store(self) -> InMemoryBookingStore:
        return self._store

    def _snapshot(self) -> ConfigSnapshot:
        if isinstance(self._snapshot_source, ConfigSnapshot):
            return self._snapshot_source
        return self._snapshot_source()

    def quote(self, request: BookingRequest) -> PriceResult:
        """Price a request without booking it."""
        return resolve_price(
            self._snapshot(),
            channel_id=request.channel_id,
            booking_date=request.booking_date,
            start_time=request.start_time,
            duration_hours=request.duration_hours,
            cleaner_count=request.cleaner_count,
            area_code=request.area_code,
            with_materials=request.with_materials,
            address=request.address,
        )

    def available_slots(
        self,
        cleaner_id: str,
        channel_id: str,
        booking_date: Union[str, date],
        duration_hours: float,
    ) -> list[time]:
        """Start times at which the cleaner could take a booking of this length."""
        snapshot = self._snapshot()
        day = parse_date(booking_date)
        rule = snapshot.channel_rule(channel_id)
        return find_available_slots(
            cleaner_id,
            day,
            duration_hours,
            self._store.bookings_for(cleaner_id, day),
            snapshot.gaps.gap_for(channel_id, duration_hours),
            work_start=rule.work_start_time if rule else None,
            work_end=rule.work_end_time if rule else None,
        )

    def create_booking(self, request: BookingRequest, now: Optional[datetime] = None) -> BookingOutcome:
        """
        Price and commit a booking for one cleaner.

        Returns:
            A successful outcome carrying the stored booking, or a failed one
            carrying the ``failure`` variant that blocked it.
        """
        set_request_id(f"REQ-{uuid.uuid4().hex[:8]}")
        now = now or self._clock()
        snapshot = self._snapshot()

        price = self.quote(request)
        if isinstance(price, InvalidDuration):
            return BookingOutcome(success=False, message=price.message, failure=price)
        if isinstance(price, NoPricingCoverage):
            if request.manual_price is None:
                return BookingOutcome(success=False, message=price.message, failure=price)
            logger.info("No pricing coverage, using manual price for %s", request.cleaner_id)
            price = None

        classified = snapshot.catalog.classify(request.start_time)
        period = classified if isinstance(classified, TimePeriod) else None
        gap_minutes = snapshot.gaps.gap_for(request.channel_id, request.duration_hours)
        rule = snapshot.channel_rule(request.channel_id)

        with self._store.cleaner_lock(request.cleaner_id):
            current = self._store.bookings_for(request.cleaner_id, request.booking_date)
            workload = daily_workload(
                request.cleaner_id, request.booking_date, current, extra_hours=request.duration_hours,
            )
            violation = evaluate_channel_rules(
                rule, request.booking_date, request.start_time, request.duration_hours, now,
                booked_hours=workload.booked_hours, booked_shifts=workload.shift_count,
            )
            if violation is not None:
                return BookingOutcome(
                    success=False, message=violation.message, price=price,
                    workload=workload, failure=violation,
                )

            availability = self._check_window(
                request.cleaner_id, request.start_at, request.end_at, gap_minutes,
            )
            if isinstance(availability, SchedulingConflict):
                return BookingOutcome(
                    success=False, message=availability.message, price=price,
                    workload=workload, failure=availability,
                )

            booking = self._build_booking(request, price, period, rule, snapshot)
            try:
                self._store.insert(booking)
            except OverlapConstraintViolation as exc:
                existing = self._store.require(exc.existing_id)
                conflict = SchedulingConflict(
                    cleaner_id=request.cleaner_id,
                    with_booking_id=exc.existing_id,
                    conflicting_start=existing.start_at,
                    conflicting_end=existing.end_at,
                    gap_minutes=gap_minutes,
                )
                logger.warning("Store rejected booking %s: %s", booking.id, exc)
                return BookingOutcome(
                    success=False, message=conflict.message, price=price,
                    workload=workload, failure=conflict,
                )

        if workload.overtime_hours > 0:
            logger.info(
                "Cleaner %s is %.1fh into overtime on %s",
                request.cleaner_id, workload.overtime_hours, request.booking_date,
            )
        return BookingOutcome(
            success=True,
            message=(
                f"Booking {booking.id} {booking.status.value}: {booking.booking_date} "
                f"{booking.start_time:%H:%M}-{booking.end_time:%H:%M}, "
                f"{booking.final_price} {booking.currency}."
            ),
            booking=booking,
            price=price,
            time_period=period,
            workload=workload,
        )

    def _check_window(
        self,
        cleaner_id: str,
        start_at: datetime,
        end_at: datetime,
        gap_minutes: int,
        exclude_booking_id: Optional[str] = None,
    ) -> AvailabilityResult:
        # caller holds the cleaner lock
        gap = timedelta(minutes=gap_minutes)
        nearby = self._store.bookings_between(cleaner_id, start_at - gap, end_at + gap)
        return check_interval(
            cleaner_id, start_at, end_at, nearby, gap_minutes, exclude_booking_id=exclude_booking_id,
        )

    def _build_booking(self, request, price, period, rule, snapshot) -> Booking:
        currency = price.currency if price is not None else snapshot.default_currency
        if request.manual_price is not None:
            amount = request.manual_price
            mode = PricingMode.MANUAL
        else:
            amount = price.total
            mode = PricingMode.AUTO
        final_price = round_money(max(amount - request.discount_amount, Decimal("0")), currency)
        status = (
            BookingStatus.PENDING
            if rule is not None and rule.require_manual_confirmation
            else BookingStatus.CONFIRMED
        )
        return Booking(
            id=self._id_factory(),
            cleaner_id=request.cleaner_id,
            channel_id=request.channel_id,
            booking_date=request.booking_date,
            start_time=request.start_time,
            duration_hours=request.duration_hours,
            area_code=price.area_code if price is not None else request.area_code,
            time_period_code=period.code if period else None,
            cleaner_count=request.cleaner_count,
            with_materials=request.with_materials,
            final_price=final_price,
            currency=currency,
            status=status,
            pricing_mode=mode,
            manual_price_reason=request.manual_price_reason if mode == PricingMode.MANUAL else None,
        )

    def reschedule_booking(
        self,
        booking_id: str,
        new_date: Union[str, date],
        new_start: Union[str, time],
        now: Optional[datetime] = None,
    ) -> BookingOutcome:
        """Move a booking to a new slot. Its stored price does not change."""
        set_request_id(f"REQ-{uuid.uuid4().hex[:8]}")
        now = now or self._clock()
        snapshot = self._snapshot()
        booking = self._store.require(booking_id)
        day = parse_date(new_date)
        start = parse_time(new_start)
        gap_minutes = snapshot.gaps.gap_for(booking.channel_id, booking.duration_hours)
        start_at = combine(day, start)

        with self._store.cleaner_lock(booking.cleaner_id):
            current = self._store.bookings_for(booking.cleaner_id, day)
            workload = daily_workload(
                booking.cleaner_id, day, current,
                extra_hours=booking.duration_hours, exclude_booking_id=booking_id,
            )
            violation = evaluate_channel_rules(
                snapshot.channel_rule(booking.channel_id), day, start, booking.duration_hours, now,
                booked_hours=workload.booked_hours, booked_shifts=workload.shift_count,
            )
            if violation is not None:
                return BookingOutcome(
                    success=False, message=violation.message, booking=booking,
                    workload=workload, failure=violation,
                )
            availability = self._check_window(
                booking.cleaner_id, start_at, add_hours(start_at, booking.duration_hours),
                gap_minutes, exclude_booking_id=booking_id,
            )
            if isinstance(availability, SchedulingConflict):
                return BookingOutcome(
                    success=False, message=availability.message, booking=booking,
                    workload=workload, failure=availability,
                )
            classified = snapshot.catalog.classify(start)
            period = classified if isinstance(classified, TimePeriod) else None
            moved = self._store.move(booking_id, day, start, period.code if period else None)

        return BookingOutcome(
            success=True,
            message=f"Booking {booking_id} rescheduled to {day} at {start:%H:%M}.",
            booking=moved,
            time_period=period,
            workload=workload,
        )

    def confirm_booking(self, booking_id: str) -> Booking:
        return self._store.set_status(booking_id, BookingStatus.CONFIRMED)

    def complete_booking(self, booking_id: str) -> Booking:
        return self._store.set_status(booking_id, BookingStatus.COMPLETED)

    def cancel_booking(self, booking_id: str) -> Booking:
        return self._store.set_status(booking_id, BookingStatus.CANCELLED)
