"""
Immutable configuration snapshot handed to every resolver call.

Settings (pricing rules, special areas, time periods, gap and channel
rules) are edited by administrators and read on every booking. Resolvers
never read them from ambient state: callers pass a snapshot, refreshed
through ``SnapshotCache`` when the settings change.
"""

import json
import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from booking_engine.config import settings
from booking_engine.errors import ConfigurationIntegrityViolation
from booking_engine.rules.gap_rules import GapRuleTable
from booking_engine.rules.pricing import PricingRuleTable
from booking_engine.rules.special_areas import SpecialAreaRegistry
from booking_engine.rules.time_periods import TimePeriodCatalog
from booking_engine.schemas.config_schema import (
    ChannelBusinessRule,
    ChannelPricingRule,
    GapRule,
    SpecialArea,
    SpecialAreaPricing,
    TimePeriod,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigSnapshot:
    """All settings in force at one point in time."""

    time_periods: tuple[TimePeriod, ...] = ()
    pricing_rules: tuple[ChannelPricingRule, ...] = ()
    special_areas: tuple[SpecialArea, ...] = ()
    area_pricing: tuple[SpecialAreaPricing, ...] = ()
    gap_rules: tuple[GapRule, ...] = ()
    channel_rules: tuple[ChannelBusinessRule, ...] = ()
    default_gap_minutes: int = field(default_factory=lambda: settings.scheduling.default_gap_minutes)
    default_currency: str = field(default_factory=lambda: settings.pricing.default_currency)
    version: int = 0

    @classmethod
    def build(
        cls,
        time_periods: Iterable[TimePeriod] = (),
        pricing_rules: Iterable[ChannelPricingRule] = (),
        special_areas: Iterable[SpecialArea] = (),
        area_pricing: Iterable[SpecialAreaPricing] = (),
        gap_rules: Iterable[GapRule] = (),
        channel_rules: Iterable[ChannelBusinessRule] = (),
        **kwargs: Any,
    ) -> "ConfigSnapshot":
        """Create a snapshot, rejecting it if any invariant is broken.

        Raises:
            ConfigurationIntegrityViolation: Listing every issue found.
        """
        snapshot = cls(
            time_periods=tuple(time_periods),
            pricing_rules=tuple(pricing_rules),
            special_areas=tuple(special_areas),
            area_pricing=tuple(area_pricing),
            gap_rules=tuple(gap_rules),
            channel_rules=tuple(channel_rules),
            **kwargs,
        )
        issues = snapshot.integrity_issues()
        if issues:
            raise ConfigurationIntegrityViolation(issues)
        return snapshot

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConfigSnapshot":
        """Validate raw settings rows (e.g. a JSON export) into a snapshot."""
        return cls.build(
            time_periods=[TimePeriod.model_validate(r) for r in data.get("time_periods", [])],
            pricing_rules=[ChannelPricingRule.model_validate(r) for r in data.get("pricing_rules", [])],
            special_areas=[SpecialArea.model_validate(r) for r in data.get("special_areas", [])],
            area_pricing=[SpecialAreaPricing.model_validate(r) for r in data.get("area_pricing", [])],
            gap_rules=[GapRule.model_validate(r) for r in data.get("gap_rules", [])],
            channel_rules=[ChannelBusinessRule.model_validate(r) for r in data.get("channel_rules", [])],
        )

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ConfigSnapshot":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        logger.info("Loaded configuration snapshot from %s", path)
        return cls.from_dict(data)

    @cached_property
    def catalog(self) -> TimePeriodCatalog:
        return TimePeriodCatalog(self.time_periods)

    @cached_property
    def pricing(self) -> PricingRuleTable:
        return PricingRuleTable(self.pricing_rules)

    @cached_property
    def areas(self) -> SpecialAreaRegistry:
        return SpecialAreaRegistry(self.special_areas, self.area_pricing)

    @cached_property
    def gaps(self) -> GapRuleTable:
        return GapRuleTable(self.gap_rules, self.default_gap_minutes)

    def channel_rule(self, channel_id: str) -> Optional[ChannelBusinessRule]:
        for rule in self.channel_rules:
            if rule.channel_id == channel_id and rule.is_active:
                return rule
        return None

    def integrity_issues(self) -> list[str]:
        """Every data-quality defect in this snapshot."""
        issues: list[str] = []
        issues.extend(self.catalog.integrity_issues())
        issues.extend(self.pricing.integrity_issues())
        issues.extend(self.areas.integrity_issues())
        issues.extend(self.gaps.integrity_issues())

        active_channels: set[str] = set()
        for rule in self.channel_rules:
            if not rule.is_active:
                continue
            if rule.channel_id in active_channels:
                issues.append(f"More than one active business rule for channel '{rule.channel_id}'")
            active_channels.add(rule.channel_id)
        return issues
