"""
Time period catalog: classifies a booking start time into a named window.

Periods are half-open ``[start_time, end_time)`` so a time sitting on the
boundary between two adjacent periods belongs to the later one. Periods
need not tile the day; a time in a gap is ``Unclassified``.
"""

import logging
from datetime import time
from typing import Iterable, Optional, Union

from booking_engine.schemas.config_schema import TimePeriod
from booking_engine.schemas.result_schema import ClassificationResult, Unclassified
from booking_engine.utils import parse_time

logger = logging.getLogger(__name__)


class TimePeriodCatalog:
    """Ordered, non-overlapping set of time periods."""

    def __init__(self, periods: Iterable[TimePeriod] = ()) -> None:
        self._periods: tuple[TimePeriod, ...] = tuple(
            sorted(periods, key=lambda p: (p.display_order, p.start_time))
        )

    @property
    def periods(self) -> tuple[TimePeriod, ...]:
        return self._periods

    def __len__(self) -> int:
        return len(self._periods)

    def get(self, code: str) -> Optional[TimePeriod]:
        for period in self._periods:
            if period.code == code:
                return period
        return None

    def classify(self, start_time: Union[str, time]) -> ClassificationResult:
        """Return the period containing ``start_time`` or ``Unclassified``."""
        at = parse_time(start_time)
        for period in self._periods:
            if period.contains(at):
                return period
        logger.debug("Start time %s falls outside every time period", at)
        return Unclassified(at=at)

    def integrity_issues(self) -> list[str]:
        """Report duplicate codes and overlapping windows."""
        issues: list[str] = []
        seen: set[str] = set()
        for period in self._periods:
            if period.code in seen:
                issues.append(f"Duplicate time period code '{period.code}'")
            seen.add(period.code)

        by_start = sorted(self._periods, key=lambda p: p.start_time)
        for earlier, later in zip(by_start, by_start[1:]):
            if later.start_time < earlier.end_time:
                issues.append(
                    f"Time periods '{earlier.code}' and '{later.code}' overlap "
                    f"({earlier.start_time}-{earlier.end_time} / {later.start_time}-{later.end_time})"
                )
        return issues
