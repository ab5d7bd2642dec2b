"""Tests for the booking workflow: create, reschedule and status changes."""

import threading
from datetime import datetime, time, timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from booking_engine.errors import BookingNotFoundError, InvalidStatusTransition
from booking_engine.scheduling.store import InMemoryBookingStore
from booking_engine.scheduling.workflow import BookingWorkflow
from booking_engine.schemas.booking_schema import BookingRequest, BookingStatus, PricingMode
from booking_engine.schemas.config_schema import ChannelBusinessRule
from booking_engine.schemas.result_schema import (
    ChannelRuleViolation,
    InvalidDuration,
    NoPricingCoverage,
    SchedulingConflict,
)
from tests.conftest import BOOKING_DAY, NOW, make_booking, make_snapshot

NEXT_DAY = BOOKING_DAY + timedelta(days=1)


def _request(**overrides) -> BookingRequest:
    data = dict(
        cleaner_id="C-1",
        channel_id="staff",
        booking_date=BOOKING_DAY,
        start_time="10:00",
        duration_hours=3,
    )
    data.update(overrides)
    return BookingRequest(**data)


class TestCreateBooking:
    def test_successful_booking(self, workflow):
        outcome = workflow.create_booking(_request(with_materials=True))
        assert outcome.success is True
        booking = outcome.booking
        assert booking.id == "BK-0001"
        assert booking.final_price == Decimal("89.25")
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.pricing_mode == PricingMode.AUTO
        assert booking.time_period_code == "S2"
        assert outcome.time_period.code == "S2"
        assert outcome.price.total == Decimal("89.25")
        assert workflow.store.get("BK-0001") == booking

    def test_unclassified_start_still_books(self, workflow):
        outcome = workflow.create_booking(_request(start_time="12:30", duration_hours=1))
        assert outcome.success is True
        assert outcome.time_period is None
        assert outcome.booking.time_period_code is None

    def test_special_area_from_address(self, workflow):
        outcome = workflow.create_booking(_request(duration_hours=2, address="Villa 8, The Pearl"))
        assert outcome.booking.area_code == "PEARL"
        assert outcome.booking.final_price == Decimal("73.50")

    def test_conflict_within_gap(self, workflow):
        workflow.create_booking(_request())
        outcome = workflow.create_booking(_request(start_time="13:15", duration_hours=1))
        assert outcome.success is False
        assert isinstance(outcome.failure, SchedulingConflict)
        assert outcome.failure.with_booking_id == "BK-0001"
        assert len(workflow.store.all()) == 1

    def test_other_cleaner_not_blocked(self, workflow):
        workflow.create_booking(_request())
        outcome = workflow.create_booking(_request(cleaner_id="C-2"))
        assert outcome.success is True

    def test_no_pricing_coverage(self, workflow):
        outcome = workflow.create_booking(_request(channel_id="partner"))
        assert outcome.success is False
        assert isinstance(outcome.failure, NoPricingCoverage)
        assert workflow.store.all() == []

    def test_invalid_duration(self, workflow):
        outcome = workflow.create_booking(_request(duration_hours=0))
        assert isinstance(outcome.failure, InvalidDuration)
        assert workflow.store.all() == []

    def test_manual_price_without_coverage(self, workflow):
        outcome = workflow.create_booking(_request(
            channel_id="partner", manual_price=Decimal("100"), manual_price_reason="Corporate contract",
        ))
        assert outcome.success is True
        assert outcome.price is None
        assert outcome.booking.final_price == Decimal("100.00")
        assert outcome.booking.pricing_mode == PricingMode.MANUAL
        assert outcome.booking.manual_price_reason == "Corporate contract"
        assert outcome.booking.currency == "QAR"

    def test_manual_price_requires_reason(self):
        with pytest.raises(ValidationError, match="manual_price_reason"):
            _request(manual_price=Decimal("100"))

    def test_discount_applied(self, workflow):
        outcome = workflow.create_booking(_request(discount_amount=Decimal("10")))
        assert outcome.price.total == Decimal("78.75")
        assert outcome.booking.final_price == Decimal("68.75")

    def test_discount_never_below_zero(self, workflow):
        outcome = workflow.create_booking(_request(discount_amount=Decimal("500")))
        assert outcome.booking.final_price == Decimal("0.00")

    def test_overtime_reported_in_workload(self, workflow):
        workflow.create_booking(_request(start_time="08:00", duration_hours=4))
        outcome = workflow.create_booking(_request(start_time="13:00", duration_hours=5))
        assert outcome.success is True
        assert outcome.workload.total_hours == 9
        assert outcome.workload.overtime_hours == 1


class TestChannelRulesInWorkflow:
    def setup_method(self):
        rules = [
            ChannelBusinessRule(channel_id="staff", require_manual_confirmation=True, max_shifts_per_day_per_cleaner=1),
        ]
        self.workflow = BookingWorkflow(
            InMemoryBookingStore(), make_snapshot(channel_rules=rules), clock=lambda: NOW,
        )

    def test_manual_confirmation_leaves_booking_pending(self):
        outcome = self.workflow.create_booking(_request())
        assert outcome.booking.status == BookingStatus.PENDING
        confirmed = self.workflow.confirm_booking(outcome.booking.id)
        assert confirmed.status == BookingStatus.CONFIRMED
        assert confirmed.final_price == outcome.booking.final_price

    def test_outside_work_window(self):
        outcome = self.workflow.create_booking(_request(start_time="07:00", duration_hours=2))
        assert isinstance(outcome.failure, ChannelRuleViolation)
        assert outcome.failure.rule == "work_window"

    def test_shift_cap(self):
        self.workflow.create_booking(_request())
        outcome = self.workflow.create_booking(_request(start_time="15:00", duration_hours=2))
        assert outcome.failure.rule == "max_shifts_per_day_per_cleaner"

    def test_past_booking_rejected(self):
        outcome = self.workflow.create_booking(_request(), now=NOW.replace(year=2026))
        assert outcome.failure.rule == "allow_past_booking"

    def test_available_slots_use_channel_window(self):
        rules = [ChannelBusinessRule(channel_id="staff", work_start_time=time(9), work_end_time=time(13))]
        workflow = BookingWorkflow(InMemoryBookingStore(), make_snapshot(channel_rules=rules))
        slots = workflow.available_slots("C-1", "staff", BOOKING_DAY, 4)
        assert slots == [time(9, 0)]


class TestReschedule:
    def test_reschedule_keeps_price(self, workflow):
        created = workflow.create_booking(_request(with_materials=True)).booking
        outcome = workflow.reschedule_booking(created.id, BOOKING_DAY, "14:00")
        assert outcome.success is True
        assert outcome.booking.start_time == time(14, 0)
        assert outcome.booking.time_period_code == "S3"
        assert outcome.booking.final_price == created.final_price
        assert workflow.store.get(created.id).start_time == time(14, 0)

    def test_reschedule_ignores_own_slot(self, workflow):
        created = workflow.create_booking(_request(duration_hours=2)).booking
        outcome = workflow.reschedule_booking(created.id, BOOKING_DAY, "11:00")
        assert outcome.success is True

    def test_reschedule_into_conflict(self, workflow):
        first = workflow.create_booking(_request(duration_hours=2)).booking
        workflow.create_booking(_request(start_time="14:00", duration_hours=2))
        outcome = workflow.reschedule_booking(first.id, BOOKING_DAY, "15:00")
        assert outcome.success is False
        assert isinstance(outcome.failure, SchedulingConflict)
        assert workflow.store.get(first.id).start_time == time(10, 0)

    def test_reschedule_unknown_booking(self, workflow):
        with pytest.raises(BookingNotFoundError):
            workflow.reschedule_booking("BK-404", BOOKING_DAY, "10:00")


class TestBookingsPastMidnight:
    def test_late_evening_booking_runs_into_next_day(self, workflow):
        outcome = workflow.create_booking(_request(start_time="21:00", duration_hours=3))
        assert outcome.success is True
        assert outcome.booking.end_at == datetime(2025, 3, 19, 0, 0)
        assert outcome.time_period is None

    def test_next_morning_blocked_within_gap(self, workflow):
        workflow.create_booking(_request(start_time="22:00", duration_hours=3))
        outcome = workflow.create_booking(
            _request(booking_date=NEXT_DAY, start_time="01:15", duration_hours=1),
        )
        assert isinstance(outcome.failure, SchedulingConflict)
        assert outcome.failure.with_booking_id == "BK-0001"

    def test_next_morning_free_after_gap(self, workflow):
        workflow.create_booking(_request(start_time="21:00", duration_hours=3))
        outcome = workflow.create_booking(
            _request(booking_date=NEXT_DAY, start_time="00:30", duration_hours=1),
        )
        assert outcome.success is True

    def test_late_request_blocked_by_next_morning_booking(self, workflow):
        workflow.store.insert(make_booking("BK-EARLY", start="00:10", hours=1, booking_date=NEXT_DAY))
        outcome = workflow.create_booking(_request(start_time="21:00", duration_hours=3))
        assert isinstance(outcome.failure, SchedulingConflict)
        assert outcome.failure.with_booking_id == "BK-EARLY"

    def test_channel_work_window_reported_for_late_request(self):
        rules = [ChannelBusinessRule(channel_id="staff")]
        workflow = BookingWorkflow(
            InMemoryBookingStore(), make_snapshot(channel_rules=rules), clock=lambda: NOW,
        )
        outcome = workflow.create_booking(_request(start_time="21:00", duration_hours=3))
        assert isinstance(outcome.failure, ChannelRuleViolation)
        assert outcome.failure.rule == "work_window"

    def test_channel_rule_checked_before_conflicts(self):
        store = InMemoryBookingStore()
        store.insert(make_booking("BK-LATE", start="21:00", hours=1))
        rules = [ChannelBusinessRule(channel_id="staff")]
        workflow = BookingWorkflow(store, make_snapshot(channel_rules=rules), clock=lambda: NOW)
        outcome = workflow.create_booking(_request(start_time="21:00", duration_hours=3))
        assert isinstance(outcome.failure, ChannelRuleViolation)
        assert outcome.failure.rule == "work_window"

    def test_reschedule_across_midnight(self, workflow):
        created = workflow.create_booking(_request(duration_hours=3)).booking
        workflow.store.insert(make_booking("BK-EARLY", start="01:00", hours=1, booking_date=NEXT_DAY))
        outcome = workflow.reschedule_booking(created.id, BOOKING_DAY, "22:00")
        assert isinstance(outcome.failure, SchedulingConflict)
        assert outcome.failure.with_booking_id == "BK-EARLY"

        moved = workflow.reschedule_booking(created.id, BOOKING_DAY, "21:00")
        assert moved.success is True
        assert moved.booking.end_at == datetime(2025, 3, 19, 0, 0)


class TestStatusChanges:
    def test_cancel_frees_the_slot(self, workflow):
        created = workflow.create_booking(_request()).booking
        workflow.cancel_booking(created.id)
        outcome = workflow.create_booking(_request())
        assert outcome.success is True

    def test_complete_then_cancel_rejected(self, workflow):
        created = workflow.create_booking(_request()).booking
        workflow.complete_booking(created.id)
        with pytest.raises(InvalidStatusTransition):
            workflow.cancel_booking(created.id)

    def test_cancelled_cannot_be_rescheduled(self, workflow):
        created = workflow.create_booking(_request()).booking
        workflow.cancel_booking(created.id)
        with pytest.raises(InvalidStatusTransition):
            workflow.reschedule_booking(created.id, BOOKING_DAY, "15:00")


class TestConcurrentBooking:
    def test_only_one_writer_wins_the_slot(self, workflow):
        attempts = 8
        barrier = threading.Barrier(attempts)
        outcomes = []
        outcomes_lock = threading.Lock()

        def book():
            barrier.wait()
            outcome = workflow.create_booking(_request())
            with outcomes_lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=book) for _ in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        winners = [o for o in outcomes if o.success]
        assert len(outcomes) == attempts
        assert len(winners) == 1
        assert all(isinstance(o.failure, SchedulingConflict) for o in outcomes if not o.success)
        assert len(workflow.store.bookings_for("C-1", BOOKING_DAY)) == 1
