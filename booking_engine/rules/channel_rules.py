"""
Channel business rules: work window, shift length, lead time, daily caps.

Each check returns a ``ChannelRuleViolation`` describing the first rule a
request breaks, or ``None`` when the request is acceptable for the channel.
The reference clock is always passed in.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from booking_engine.schemas.config_schema import ChannelBusinessRule
from booking_engine.schemas.result_schema import ChannelRuleViolation
from booking_engine.utils import add_hours, combine

logger = logging.getLogger(__name__)


def evaluate_channel_rules(
    rule: Optional[ChannelBusinessRule],
    booking_date: date,
    start_time: time,
    duration_hours: float,
    now: datetime,
    booked_hours: float = 0.0,
    booked_shifts: int = 0,
) -> Optional[ChannelRuleViolation]:
    """
    Check a prospective booking against its channel's business rules.

    Args:
        rule: The channel's rule set; ``None`` or inactive means unrestricted.
        booking_date: Requested date.
        start_time: Requested start.
        duration_hours: Requested hours.
        now: Reference instant for past/same-day/advance checks.
        booked_hours: Hours the cleaner already has on that date.
        booked_shifts: Bookings the cleaner already has on that date.
    """
    if rule is None or not rule.is_active:
        return None

    def violation(name: str, detail: str) -> ChannelRuleViolation:
        logger.info("Channel %s rejected booking: %s (%s)", rule.channel_id, name, detail)
        return ChannelRuleViolation(channel_id=rule.channel_id, rule=name, detail=detail)

    start_at = combine(booking_date, start_time)
    end_at = add_hours(start_at, duration_hours)
    window_start = combine(booking_date, rule.work_start_time)
    window_end = combine(booking_date, rule.work_end_time)

    if start_at < window_start or end_at > window_end:
        return violation(
            "work_window",
            f"{start_at:%H:%M}-{end_at:%H:%M} is outside "
            f"{rule.work_start_time:%H:%M}-{rule.work_end_time:%H:%M}",
        )

    if duration_hours < rule.min_shift_hours:
        return violation("min_shift_hours", f"{duration_hours}h is below {rule.min_shift_hours}h")
    if duration_hours > rule.max_shift_hours:
        return violation("max_shift_hours", f"{duration_hours}h exceeds {rule.max_shift_hours}h")

    if start_at < now and not rule.allow_past_booking:
        return violation("allow_past_booking", f"{start_at:%Y-%m-%d %H:%M} is in the past")

    if booking_date == now.date() and not rule.allow_same_day_booking:
        return violation("allow_same_day_booking", "same-day bookings are not accepted")

    if start_at >= now and start_at - now < timedelta(hours=rule.min_advance_hours):
        return violation(
            "min_advance_hours",
            f"booking must be made at least {rule.min_advance_hours}h in advance",
        )

    if booking_date > now.date() + timedelta(days=rule.max_advance_days):
        return violation(
            "max_advance_days",
            f"booking cannot be more than {rule.max_advance_days} days ahead",
        )

    if booked_hours + duration_hours > rule.max_daily_hours_per_cleaner:
        return violation(
            "max_daily_hours_per_cleaner",
            f"{booked_hours + duration_hours}h exceeds {rule.max_daily_hours_per_cleaner}h per day",
        )

    if booked_shifts + 1 > rule.max_shifts_per_day_per_cleaner:
        return violation(
            "max_shifts_per_day_per_cleaner",
            f"cleaner already has {booked_shifts} shifts that day",
        )

    return None
