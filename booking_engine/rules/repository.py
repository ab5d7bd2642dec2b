"""
Settings repository and snapshot cache.

The repository is the write surface used by settings administrators. Every
write is validated against the whole would-be configuration before it is
applied, so integrity defects (overlapping pricing intervals, ambiguous area
keywords) are rejected at configuration time, never discovered while
booking. Pricing rules are never deleted: a new rate supersedes the current
one, which keeps historical prices reproducible.

Usage:
    repo = SettingsRepository()
    cache = SnapshotCache(repo.snapshot, ttl_seconds=60)
    repo.subscribe(cache.invalidate)
    repo.supersede_pricing_rule(new_rule)
    snapshot = cache.get()
"""

import logging
import time as _time
from dataclasses import replace
from threading import Lock
from typing import Callable, Optional

from booking_engine.config import settings
from booking_engine.errors import ConfigurationIntegrityViolation
from booking_engine.rules.snapshot import ConfigSnapshot
from booking_engine.schemas.config_schema import (
    ChannelBusinessRule,
    ChannelPricingRule,
    GapRule,
    SpecialArea,
    SpecialAreaPricing,
    TimePeriod,
)

logger = logging.getLogger(__name__)


def _upsert(items: tuple, item, key: Callable) -> tuple:
    kept = tuple(existing for existing in items if key(existing) != key(item))
    return kept + (item,)


class SettingsRepository:
    """In-process settings store with write-time integrity validation."""

    def __init__(self, initial: Optional[ConfigSnapshot] = None) -> None:
        self._lock = Lock()
        self._snapshot = initial or ConfigSnapshot()
        self._listeners: list[Callable[[], None]] = []

    @property
    def version(self) -> int:
        return self._snapshot.version

    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot

    def subscribe(self, listener: Callable[[], None]) -> None:
        """Register a callback fired after every successful write."""
        self._listeners.append(listener)

    def _commit(self, derive: Callable[[ConfigSnapshot], dict]) -> ConfigSnapshot:
        """
        Apply ``derive(current)`` as a new version.

        The read of the current snapshot, the validation of the candidate
        and the swap all happen under one lock, so concurrent writers never
        build on a stale version.
        """
        with self._lock:
            changes = derive(self._snapshot)
            candidate = replace(self._snapshot, version=self._snapshot.version + 1, **changes)
            issues = candidate.integrity_issues()
            if issues:
                logger.warning("Rejected settings write: %s", "; ".join(issues))
                raise ConfigurationIntegrityViolation(issues)
            self._snapshot = candidate
        logger.info("Settings updated to version %d", candidate.version)
        for listener in self._listeners:
            listener()
        return candidate

    def upsert_time_period(self, period: TimePeriod) -> ConfigSnapshot:
        return self._commit(lambda current: {
            "time_periods": _upsert(current.time_periods, period, lambda p: p.code),
        })

    def upsert_special_area(self, area: SpecialArea) -> ConfigSnapshot:
        return self._commit(lambda current: {
            "special_areas": _upsert(current.special_areas, area, lambda a: a.id),
        })

    def upsert_area_pricing(self, pricing: SpecialAreaPricing) -> ConfigSnapshot:
        return self._commit(lambda current: {
            "area_pricing": _upsert(current.area_pricing, pricing, lambda p: p.id),
        })

    def upsert_gap_rule(self, rule: GapRule) -> ConfigSnapshot:
        return self._commit(lambda current: {
            "gap_rules": _upsert(current.gap_rules, rule, lambda r: r.id),
        })

    def upsert_channel_rule(self, rule: ChannelBusinessRule) -> ConfigSnapshot:
        return self._commit(lambda current: {
            "channel_rules": _upsert(current.channel_rules, rule, lambda r: r.channel_id),
        })

    def add_pricing_rule(self, rule: ChannelPricingRule) -> ConfigSnapshot:
        """Add a rule with an explicit interval (e.g. importing history)."""

        def derive(current: ConfigSnapshot) -> dict:
            if any(existing.id == rule.id for existing in current.pricing_rules):
                raise ConfigurationIntegrityViolation([f"Pricing rule id '{rule.id}' already exists"])
            return {"pricing_rules": current.pricing_rules + (rule,)}

        return self._commit(derive)

    def supersede_pricing_rule(self, rule: ChannelPricingRule) -> ConfigSnapshot:
        """
        Make ``rule`` the channel's current rate.

        The channel's open-ended active rule is closed at
        ``rule.effective_from``; older rows are left untouched.

        Raises:
            ConfigurationIntegrityViolation: If the new rule does not start
                after the current one, or would overlap another interval.
        """

        def derive(snapshot: ConfigSnapshot) -> dict:
            current = snapshot.pricing.current_rule(rule.channel_id)
            rules = snapshot.pricing_rules
            if current is not None:
                if rule.effective_from <= current.effective_from:
                    raise ConfigurationIntegrityViolation([
                        f"Rule '{rule.id}' must start after current rule '{current.id}' "
                        f"({current.effective_from.isoformat()})"
                    ])
                closed = current.model_copy(update={"effective_to": rule.effective_from})
                rules = tuple(closed if r.id == current.id else r for r in rules)
                logger.info(
                    "Superseding pricing rule %s for channel %s from %s",
                    current.id, rule.channel_id, rule.effective_from,
                )
            if any(existing.id == rule.id for existing in rules):
                raise ConfigurationIntegrityViolation([f"Pricing rule id '{rule.id}' already exists"])
            return {"pricing_rules": rules + (rule,)}

        return self._commit(derive)

    def set_pricing_rule_active(self, rule_id: str, is_active: bool) -> ConfigSnapshot:

        def derive(current: ConfigSnapshot) -> dict:
            rules = current.pricing_rules
            if not any(r.id == rule_id for r in rules):
                raise KeyError(f"Pricing rule '{rule_id}' not found")
            return {"pricing_rules": tuple(
                r.model_copy(update={"is_active": is_active}) if r.id == rule_id else r
                for r in rules
            )}

        return self._commit(derive)


class SnapshotCache:
    """
    Read-mostly cache of the configuration snapshot.

    A cached snapshot is served for at most ``ttl_seconds``; ``invalidate``
    forces the next ``get`` to reload.
    """

    def __init__(
        self,
        loader: Callable[[], ConfigSnapshot],
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = _time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl = settings.cache.snapshot_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._snapshot: Optional[ConfigSnapshot] = None
        self._loaded_at = 0.0

    def get(self) -> ConfigSnapshot:
        with self._lock:
            now = self._clock()
            if self._snapshot is None or now - self._loaded_at >= self._ttl:
                self._snapshot = self._loader()
                self._loaded_at = now
                logger.debug("Configuration snapshot refreshed (version %d)", self._snapshot.version)
            return self._snapshot

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
