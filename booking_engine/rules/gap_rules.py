"""Travel gap lookup between consecutive bookings of the same cleaner."""

import logging
from typing import Iterable, Optional

from booking_engine.schemas.config_schema import GapRule

logger = logging.getLogger(__name__)


class GapRuleTable:
    """
    Resolves the required gap for a channel and booking duration.

    Among matching active rules the highest ``priority`` wins; on equal
    priority a channel-specific rule beats a global one. With no match the
    table falls back to ``default_gap_minutes``.
    """

    def __init__(self, rules: Iterable[GapRule] = (), default_gap_minutes: int = 30) -> None:
        self._rules: tuple[GapRule, ...] = tuple(rules)
        self._default = default_gap_minutes

    @property
    def default_gap_minutes(self) -> int:
        return self._default

    def rule_for(self, channel_id: str, duration_hours: float) -> Optional[GapRule]:
        candidates = [r for r in self._rules if r.applies_to(channel_id, duration_hours)]
        if not candidates:
            return None
        return max(
            candidates,
            key=lambda r: (r.priority, r.channel_id is not None, r.min_booking_hours),
        )

    def gap_for(self, channel_id: str, duration_hours: float) -> int:
        rule = self.rule_for(channel_id, duration_hours)
        if rule is None:
            logger.debug(
                "No gap rule for channel %s (%.1fh), using default %d min",
                channel_id, duration_hours, self._default,
            )
            return self._default
        return rule.gap_minutes

    def integrity_issues(self) -> list[str]:
        issues: list[str] = []
        active = [r for r in self._rules if r.is_active]
        for i, rule in enumerate(active):
            for other in active[i + 1:]:
                if rule.channel_id != other.channel_id or rule.priority != other.priority:
                    continue
                rule_max = rule.max_booking_hours if rule.max_booking_hours is not None else float("inf")
                other_max = other.max_booking_hours if other.max_booking_hours is not None else float("inf")
                if rule.min_booking_hours < other_max and other.min_booking_hours < rule_max:
                    issues.append(
                        f"Gap rules '{rule.id}' and '{other.id}' cover overlapping durations "
                        f"at the same priority"
                    )
        return issues
