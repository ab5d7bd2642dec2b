from booking_engine.scheduling.availability import (
    check_availability,
    check_interval,
    daily_workload,
    find_available_slots,
)
from booking_engine.scheduling.store import InMemoryBookingStore
from booking_engine.scheduling.timeline import project, project_by_cleaner
from booking_engine.scheduling.workflow import BookingOutcome, BookingWorkflow

__all__ = [
    "check_availability",
    "check_interval",
    "find_available_slots",
    "daily_workload",
    "project",
    "project_by_cleaner",
    "InMemoryBookingStore",
    "BookingWorkflow",
    "BookingOutcome",
]
