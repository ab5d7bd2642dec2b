"""Shared utilities used across the booking engine."""

import re
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ISO 4217 minor units for the currencies the business has priced in.
CURRENCY_MINOR_UNITS: dict[str, int] = {
    "QAR": 2,
    "SAR": 2,
    "AED": 2,
    "USD": 2,
    "EUR": 2,
    "KWD": 3,
    "BHD": 3,
    "OMR": 3,
    "JPY": 0,
}
DEFAULT_MINOR_UNITS = 2

_TIME_FORMATS = ("%H:%M:%S", "%H:%M")


def parse_time(value: Union[str, time]) -> time:
    """Parse a wall-clock time given as ``HH:MM`` or ``HH:MM:SS``.

    Examples:
        >>> parse_time("08:30")
        datetime.time(8, 30)
        >>> parse_time("12:15:00")
        datetime.time(12, 15)
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValueError(f"Expected a time string, got {value!r}")
    text = value.strip()
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Malformed time {value!r}, expected HH:MM or HH:MM:SS")


def parse_date(value: Union[str, date]) -> date:
    """Parse a calendar date given as ``YYYY-MM-DD``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, AttributeError):
        raise ValueError(f"Malformed date {value!r}, expected YYYY-MM-DD") from None


def combine(day: date, at: time) -> datetime:
    """Combine a booking date and a wall-clock time into a naive instant."""
    return datetime.combine(day, at)


def add_hours(start: datetime, hours: float) -> datetime:
    return start + timedelta(minutes=round(hours * 60))


def minutes_of_day(at: time) -> int:
    return at.hour * 60 + at.minute


def hours_to_decimal(hours: float) -> Decimal:
    """Convert an hour count to Decimal without binary float noise."""
    return Decimal(str(hours))


def round_money(amount: Decimal, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit.

    Examples:
        >>> round_money(Decimal("89.245"), "QAR")
        Decimal('89.25')
        >>> round_money(Decimal("1.0005"), "KWD")
        Decimal('1.001')
    """
    places = CURRENCY_MINOR_UNITS.get(currency.upper(), DEFAULT_MINOR_UNITS)
    quantum = Decimal(1).scaleb(-places)
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def normalize_text(value: str) -> str:
    """Case-fold and collapse whitespace for keyword matching.

    Examples:
        >>> normalize_text("  The   PEARL ")
        'the pearl'
    """
    return re.sub(r"\s+", " ", value).strip().casefold()
