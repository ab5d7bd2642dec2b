"""
Pricing rule table and price resolver.

Rules are versioned per channel by effective interval: at most one active
rule covers a (channel, instant) pair. A special area override for the
channel is more specific than the channel rule and takes precedence for the
fields it sets.

Price composition:
    base      = hourly_rate * duration_hours * cleaner_count
    materials = materials_fee * cleaner_count       (only with materials)
    tax       = (base + materials) * tax_rate
    total     = base + materials + tax

Each component is rounded half-up to the currency's minor unit and the
total is the sum of the rounded components, so the breakdown always adds
up to what the client is charged.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Optional, Union

from booking_engine.schemas.booking_schema import PriceBreakdown
from booking_engine.schemas.config_schema import ChannelPricingRule
from booking_engine.schemas.result_schema import InvalidDuration, NoPricingCoverage, PriceResult
from booking_engine.utils import combine, hours_to_decimal, parse_date, parse_time, round_money

if TYPE_CHECKING:
    from booking_engine.rules.snapshot import ConfigSnapshot

logger = logging.getLogger(__name__)


class PricingRuleTable:
    """Channel pricing rules indexed by channel."""

    def __init__(self, rules: Iterable[ChannelPricingRule] = ()) -> None:
        self._by_channel: dict[str, list[ChannelPricingRule]] = {}
        for rule in rules:
            self._by_channel.setdefault(rule.channel_id, []).append(rule)
        for channel_rules in self._by_channel.values():
            channel_rules.sort(key=lambda r: r.effective_from)

    def rules_for(self, channel_id: str) -> list[ChannelPricingRule]:
        return list(self._by_channel.get(channel_id, []))

    def all_rules(self) -> list[ChannelPricingRule]:
        return [rule for rules in self._by_channel.values() for rule in rules]

    def rule_for(self, channel_id: str, instant: datetime) -> Optional[ChannelPricingRule]:
        """The active rule whose effective interval contains ``instant``."""
        for rule in self._by_channel.get(channel_id, []):
            if rule.is_active and rule.covers(instant):
                return rule
        return None

    def current_rule(self, channel_id: str) -> Optional[ChannelPricingRule]:
        """The active open-ended rule, if the channel has one."""
        for rule in self._by_channel.get(channel_id, []):
            if rule.is_active and rule.effective_to is None:
                return rule
        return None

    def integrity_issues(self) -> list[str]:
        issues: list[str] = []
        ids: set[str] = set()
        for rule in self.all_rules():
            if rule.id in ids:
                issues.append(f"Duplicate pricing rule id '{rule.id}'")
            ids.add(rule.id)

        for channel_id, rules in self._by_channel.items():
            active = [r for r in rules if r.is_active]
            for i, rule in enumerate(active):
                for other in active[i + 1:]:
                    if rule.overlaps(other):
                        issues.append(
                            f"Active pricing rules '{rule.id}' and '{other.id}' overlap "
                            f"for channel '{channel_id}'"
                        )
        return issues


def resolve_price(
    snapshot: ConfigSnapshot,
    channel_id: str,
    booking_date: Union[str, date],
    start_time: Union[str, time],
    duration_hours: float,
    cleaner_count: int = 1,
    area_code: Optional[str] = None,
    with_materials: bool = False,
    address: Optional[str] = None,
) -> PriceResult:
    """
    Resolve the price of a booking against a configuration snapshot.

    Args:
        snapshot: Pricing rules and special areas in force.
        channel_id: Intake channel of the booking.
        booking_date: Calendar date of the booking.
        start_time: Wall-clock start, combined with the date into the
            instant used to select the pricing rule.
        duration_hours: Booked hours per cleaner.
        cleaner_count: Number of cleaners sent.
        area_code: Special area, if already known.
        with_materials: Whether the client pays for cleaning materials.
        address: Free-text address, matched against special areas when
            ``area_code`` is not given.

    Returns:
        A ``PriceBreakdown``, or ``InvalidDuration`` / ``NoPricingCoverage``.

    Raises:
        ValueError: On malformed dates/times or a cleaner count below one.
    """
    if duration_hours is None or duration_hours <= 0:
        return InvalidDuration(duration_hours=duration_hours)
    if cleaner_count < 1:
        raise ValueError(f"cleaner_count must be >= 1, got {cleaner_count}")

    instant = combine(parse_date(booking_date), parse_time(start_time))
    channel_rule = snapshot.pricing.rule_for(channel_id, instant)

    if area_code is None and address:
        matched = snapshot.areas.match(address)
        area_code = matched.code if matched else None

    override = snapshot.areas.pricing_for(channel_id, area_code) if area_code else None

    if override is not None:
        hourly_rate = override.hourly_rate_per_cleaner
        materials_fee = override.materials_price_per_cleaner
        tax_rate = override.tax_rate
        currency = override.currency
        if channel_rule is not None:
            if materials_fee is None:
                materials_fee = channel_rule.materials_price_per_cleaner
            if tax_rate is None:
                tax_rate = channel_rule.tax_rate
            currency = currency or channel_rule.currency
        if tax_rate is None or (with_materials and materials_fee is None):
            logger.warning(
                "Area override %s for channel %s is incomplete and no channel rule covers %s",
                override.id, channel_id, instant,
            )
            return NoPricingCoverage(channel_id=channel_id, instant=instant, area_code=area_code)
        currency = currency or snapshot.default_currency
    elif channel_rule is not None:
        hourly_rate = channel_rule.hourly_rate_per_cleaner
        materials_fee = channel_rule.materials_price_per_cleaner
        tax_rate = channel_rule.tax_rate
        currency = channel_rule.currency
    else:
        logger.info("No pricing coverage for channel %s at %s", channel_id, instant)
        return NoPricingCoverage(channel_id=channel_id, instant=instant, area_code=area_code)

    count = Decimal(cleaner_count)
    base = hourly_rate * hours_to_decimal(duration_hours) * count
    materials = (materials_fee or Decimal("0")) * count if with_materials else Decimal("0")
    tax = (base + materials) * tax_rate

    base = round_money(base, currency)
    materials = round_money(materials, currency)
    tax = round_money(tax, currency)

    return PriceBreakdown(
        channel_id=channel_id,
        rule_id=channel_rule.id if channel_rule else None,
        area_code=area_code,
        area_pricing_id=override.id if override else None,
        hourly_rate=hourly_rate,
        duration_hours=duration_hours,
        cleaner_count=cleaner_count,
        base=base,
        materials=materials,
        tax_rate=tax_rate,
        tax=tax,
        total=base + materials + tax,
        currency=currency,
    )
