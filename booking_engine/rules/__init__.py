from booking_engine.rules.channel_rules import evaluate_channel_rules
from booking_engine.rules.gap_rules import GapRuleTable
from booking_engine.rules.pricing import PricingRuleTable, resolve_price
from booking_engine.rules.repository import SettingsRepository, SnapshotCache
from booking_engine.rules.snapshot import ConfigSnapshot
from booking_engine.rules.special_areas import SpecialAreaRegistry
from booking_engine.rules.time_periods import TimePeriodCatalog

__all__ = [
    "ConfigSnapshot",
    "SettingsRepository",
    "SnapshotCache",
    "PricingRuleTable",
    "resolve_price",
    "SpecialAreaRegistry",
    "GapRuleTable",
    "TimePeriodCatalog",
    "evaluate_channel_rules",
]
