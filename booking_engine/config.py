"""
Centralized configuration with environment variable overrides.

Defaults that shape pricing, scheduling and the timeline view live here.
Pricing rules, areas and time periods themselves are settings data and
travel in a ConfigSnapshot, not in the environment.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class PricingConfig:
    """Pricing defaults not carried by individual rules."""

    default_currency: str = os.getenv("DEFAULT_CURRENCY", "QAR")


@dataclass(frozen=True)
class SchedulingConfig:
    """Gap, slot grid and workload settings."""

    default_gap_minutes: int = _safe_int("DEFAULT_GAP_MINUTES", "30")
    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    regular_daily_hours: float = _safe_float("REGULAR_DAILY_HOURS", "8.0")
    default_work_start: str = os.getenv("DEFAULT_WORK_START", "08:00")
    default_work_end: str = os.getenv("DEFAULT_WORK_END", "20:00")


@dataclass(frozen=True)
class TimelineConfig:
    """Visible hour range of the schedule timeline."""

    visible_start: str = os.getenv("TIMELINE_VISIBLE_START", "08:00")
    visible_end: str = os.getenv("TIMELINE_VISIBLE_END", "20:00")


@dataclass(frozen=True)
class CacheConfig:
    """Staleness bound for cached configuration snapshots."""

    snapshot_ttl_seconds: float = _safe_float("SNAPSHOT_TTL_SECONDS", "60.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    pricing: PricingConfig = field(default_factory=PricingConfig)
    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    timeline: TimelineConfig = field(default_factory=TimelineConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "cleaning-ops")


def _parse_hhmm(name: str, value: str) -> int:
    """Return minutes past midnight for an HH:MM setting."""
    try:
        hours, minutes = value.strip().split(":")
        total = int(hours) * 60 + int(minutes)
    except (ValueError, AttributeError):
        raise ValueError(f"{name} must be HH:MM, got {value!r}") from None
    if not 0 <= total <= 24 * 60:
        raise ValueError(f"{name} must be within the day, got {value!r}")
    return total


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if len(config.pricing.default_currency) != 3:
        raise ValueError(
            f"DEFAULT_CURRENCY must be a 3-letter code, got {config.pricing.default_currency!r}"
        )
    if config.scheduling.default_gap_minutes < 0:
        raise ValueError(
            f"DEFAULT_GAP_MINUTES must be >= 0, got {config.scheduling.default_gap_minutes}"
        )
    if config.scheduling.slot_step_minutes < 1:
        raise ValueError(
            f"SLOT_STEP_MINUTES must be >= 1, got {config.scheduling.slot_step_minutes}"
        )
    if config.scheduling.regular_daily_hours <= 0:
        raise ValueError(
            "REGULAR_DAILY_HOURS must be > 0, "
            f"got {config.scheduling.regular_daily_hours}"
        )
    if config.cache.snapshot_ttl_seconds < 0:
        raise ValueError(
            "SNAPSHOT_TTL_SECONDS must be >= 0, "
            f"got {config.cache.snapshot_ttl_seconds}"
        )

    for start_name, start, end_name, end in [
        ("TIMELINE_VISIBLE_START", config.timeline.visible_start,
         "TIMELINE_VISIBLE_END", config.timeline.visible_end),
        ("DEFAULT_WORK_START", config.scheduling.default_work_start,
         "DEFAULT_WORK_END", config.scheduling.default_work_end),
    ]:
        if _parse_hhmm(start_name, start) >= _parse_hhmm(end_name, end):
            raise ValueError(f"{start_name} must be before {end_name}, got {start} >= {end}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
