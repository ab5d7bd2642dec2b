"""Tests for the timeline projection."""

import pytest

from booking_engine.scheduling.timeline import project, project_by_cleaner
from booking_engine.schemas.booking_schema import BookingStatus
from tests.conftest import make_booking


class TestProject:
    def test_offset_and_width(self):
        entries = list(project([make_booking(start="11:00", hours=3)]))
        assert len(entries) == 1
        left, width = entries[0].as_percentages()
        assert left == pytest.approx(25.0)
        assert width == pytest.approx(25.0)
        assert entries[0].clipped is False

    def test_full_window(self):
        entry = next(iter(project([make_booking(start="08:00", hours=12)])))
        assert entry.offset_fraction == pytest.approx(0.0)
        assert entry.width_fraction == pytest.approx(1.0)

    def test_booking_starting_before_window_is_clipped(self):
        entry = next(iter(project([make_booking(start="07:00", hours=2)])))
        assert entry.clipped is True
        assert entry.offset_fraction == 0.0
        assert entry.width_fraction == pytest.approx(1 / 12)

    def test_booking_running_past_window_is_clipped(self):
        entry = next(iter(project([make_booking(start="19:00", hours=3)])))
        assert entry.clipped is True
        assert entry.offset_fraction + entry.width_fraction == pytest.approx(1.0)

    def test_booking_outside_window_has_zero_width(self):
        entry = next(iter(project([make_booking(start="05:00", hours=2)])))
        assert entry.width_fraction == 0.0
        assert entry.clipped is True

    def test_cancelled_bookings_excluded(self):
        bookings = [
            make_booking("BK-1"),
            make_booking("BK-2", start="14:00", status=BookingStatus.CANCELLED),
        ]
        projection = project(bookings)
        assert len(projection) == 1
        assert [e.booking_id for e in projection] == ["BK-1"]

    def test_ordered_by_start(self):
        bookings = [make_booking("BK-B", start="15:00"), make_booking("BK-A", start="09:00")]
        assert [e.booking_id for e in project(bookings)] == ["BK-A", "BK-B"]

    def test_iteration_is_restartable(self):
        projection = project([make_booking(), make_booking("BK-2", start="14:00")])
        assert list(projection) == list(projection)

    def test_custom_window(self):
        entry = next(iter(project([make_booking(start="10:00", hours=2)], "10:00", "14:00")))
        assert entry.as_percentages() == pytest.approx((0.0, 50.0))

    def test_empty_window_raises(self):
        with pytest.raises(ValueError):
            project([], "12:00", "12:00")


class TestProjectByCleaner:
    def test_rows_per_cleaner(self):
        bookings = [
            make_booking("BK-1", cleaner_id="C-2"),
            make_booking("BK-2", cleaner_id="C-1", start="14:00"),
        ]
        rows = project_by_cleaner(bookings)
        assert list(rows) == ["C-1", "C-2"]
        assert [e.booking_id for e in rows["C-2"]] == ["BK-1"]

    def test_requested_cleaners_get_empty_rows(self):
        rows = project_by_cleaner([make_booking(cleaner_id="C-1")], cleaner_ids=["C-1", "C-9"])
        assert len(rows["C-9"]) == 0
        assert list(rows["C-9"]) == []
