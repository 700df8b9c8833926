"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from assignment_engine.config import (
    AppConfig,
    DispatchConfig,
    ReconciliationConfig,
    SlotConfig,
    _safe_float,
    _safe_int,
    _validate_config,
)


def _config(**sections) -> AppConfig:
    return replace(AppConfig(), **sections)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_defaults(self):
        config = AppConfig()
        assert config.slots.half_day_max_hours == 3.0
        assert config.slots.full_day_max_hours == 8.0
        assert config.dispatch.confirmation_timeout_hours > 0

    def test_half_day_threshold_must_be_positive(self):
        config = _config(slots=SlotConfig(half_day_max_hours=0.0))
        with pytest.raises(ValueError, match="HALF_DAY_MAX_HOURS"):
            _validate_config(config)

    def test_full_day_must_exceed_half_day(self):
        config = _config(slots=SlotConfig(half_day_max_hours=4.0, full_day_max_hours=4.0))
        with pytest.raises(ValueError, match="FULL_DAY_MAX_HOURS"):
            _validate_config(config)

    def test_crew_size_at_least_one(self):
        config = _config(slots=SlotConfig(default_crew_size=0))
        with pytest.raises(ValueError, match="DEFAULT_CREW_SIZE"):
            _validate_config(config)

    def test_unknown_channel(self):
        config = _config(dispatch=DispatchConfig(channels=("in_app", "fax")))
        with pytest.raises(ValueError, match="fax"):
            _validate_config(config)

    def test_no_channels(self):
        config = _config(dispatch=DispatchConfig(channels=()))
        with pytest.raises(ValueError, match="CONFIRMATION_CHANNELS"):
            _validate_config(config)

    def test_timeout_must_be_positive(self):
        config = _config(dispatch=DispatchConfig(confirmation_timeout_hours=0))
        with pytest.raises(ValueError, match="CONFIRMATION_TIMEOUT_HOURS"):
            _validate_config(config)

    def test_negative_tolerance(self):
        config = _config(reconciliation=ReconciliationConfig(overbooking_tolerance_hours=-1))
        with pytest.raises(ValueError, match="OVERBOOKING_TOLERANCE_HOURS"):
            _validate_config(config)

    def test_vat_rate_range(self):
        config = _config(reconciliation=ReconciliationConfig(vat_rate=1.5))
        with pytest.raises(ValueError, match="VAT_RATE"):
            _validate_config(config)


class TestSafeParsing:
    def test_safe_int_reads_env(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "7")
        assert _safe_int("TEST_INT", "1") == 7

    def test_safe_int_default(self, monkeypatch):
        monkeypatch.delenv("TEST_INT", raising=False)
        assert _safe_int("TEST_INT", "3") == 3

    def test_safe_int_bad_value(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "seven")
        with pytest.raises(ValueError, match="TEST_INT"):
            _safe_int("TEST_INT", "1")

    def test_safe_float_bad_value(self, monkeypatch):
        monkeypatch.setenv("TEST_FLOAT", "abc")
        with pytest.raises(ValueError, match="Invalid float for TEST_FLOAT"):
            _safe_float("TEST_FLOAT", "1.0")
