"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from booking_engine.config import (
    AppConfig,
    CacheConfig,
    PricingConfig,
    SchedulingConfig,
    TimelineConfig,
    _parse_hhmm,
    _validate_config,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_defaults(self):
        config = AppConfig()
        assert config.scheduling.regular_daily_hours == 8.0
        assert config.timeline.visible_start == "08:00"
        assert config.timeline.visible_end == "20:00"

    def test_invalid_currency_code(self):
        config = replace(AppConfig(), pricing=PricingConfig(default_currency="RIYAL"))
        with pytest.raises(ValueError, match="DEFAULT_CURRENCY"):
            _validate_config(config)

    def test_negative_gap(self):
        config = replace(AppConfig(), scheduling=replace(SchedulingConfig(), default_gap_minutes=-5))
        with pytest.raises(ValueError, match="DEFAULT_GAP_MINUTES"):
            _validate_config(config)

    def test_zero_slot_step(self):
        config = replace(AppConfig(), scheduling=replace(SchedulingConfig(), slot_step_minutes=0))
        with pytest.raises(ValueError, match="SLOT_STEP_MINUTES"):
            _validate_config(config)

    def test_non_positive_regular_hours(self):
        config = replace(AppConfig(), scheduling=replace(SchedulingConfig(), regular_daily_hours=0))
        with pytest.raises(ValueError, match="REGULAR_DAILY_HOURS"):
            _validate_config(config)

    def test_negative_ttl(self):
        config = replace(AppConfig(), cache=CacheConfig(snapshot_ttl_seconds=-1))
        with pytest.raises(ValueError, match="SNAPSHOT_TTL_SECONDS"):
            _validate_config(config)

    def test_timeline_window_inverted(self):
        config = replace(AppConfig(), timeline=TimelineConfig(visible_start="20:00", visible_end="08:00"))
        with pytest.raises(ValueError, match="TIMELINE_VISIBLE_START"):
            _validate_config(config)

    def test_work_window_malformed(self):
        config = replace(AppConfig(), scheduling=replace(SchedulingConfig(), default_work_end="8pm"))
        with pytest.raises(ValueError, match="DEFAULT_WORK_END must be HH:MM"):
            _validate_config(config)

    def test_parse_hhmm(self):
        assert _parse_hhmm("X", "08:30") == 510
        with pytest.raises(ValueError, match="within the day"):
            _parse_hhmm("X", "25:00")

    def test_safe_int_parsing(self):
        from booking_engine.config import _safe_int

        assert _safe_int("NONEXISTENT_VAR_12345", "42") == 42

    def test_safe_int_rejects_garbage(self, monkeypatch):
        from booking_engine.config import _safe_int

        monkeypatch.setenv("BOOKING_TEST_INT", "thirty")
        with pytest.raises(ValueError, match="BOOKING_TEST_INT"):
            _safe_int("BOOKING_TEST_INT", "30")

    def test_safe_float_parsing(self):
        from booking_engine.config import _safe_float

        assert _safe_float("NONEXISTENT_VAR_12345", "3.14") == pytest.approx(3.14)
