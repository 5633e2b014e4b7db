"""Tests for settings and limiter configuration normalization."""

import logging
import math

import pytest

from ratekeeper.app.core.config import Settings
from ratekeeper.app.ratelimit import RateLimitConfig


class TestRateLimitConfig:
    """Tests for RateLimitConfig.normalized()."""

    def test_defaults(self):
        config = RateLimitConfig()
        assert config.rate == 1.0
        assert config.capacity == 5
        assert config.sweep_interval == 60.0
        assert config.idle_threshold == 180.0

    def test_valid_config_unchanged(self, caplog):
        config = RateLimitConfig(rate=0.5, capacity=1, sweep_interval=1, idle_threshold=1)

        with caplog.at_level(logging.WARNING):
            assert config.normalized() is config
        assert caplog.records == []

    @pytest.mark.parametrize("rate", [0, -2.5, math.inf, math.nan, True, "fast"])
    def test_invalid_rate(self, rate):
        assert RateLimitConfig(rate=rate).normalized().rate == 1.0

    @pytest.mark.parametrize("capacity", [0, -1, 2.5, None])
    def test_invalid_capacity(self, capacity):
        assert RateLimitConfig(capacity=capacity).normalized().capacity == 5

    @pytest.mark.parametrize("interval", [0, 0.999, -60, math.nan])
    def test_invalid_sweep_interval(self, interval):
        assert RateLimitConfig(sweep_interval=interval).normalized().sweep_interval == 60.0

    @pytest.mark.parametrize("threshold", [0, 0.5, -1])
    def test_invalid_idle_threshold(self, threshold):
        assert RateLimitConfig(idle_threshold=threshold).normalized().idle_threshold == 180.0

    def test_each_correction_logged(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = RateLimitConfig(rate=-1, capacity=0).normalized()

        assert config == RateLimitConfig(rate=1.0, capacity=5)
        messages = [record.getMessage() for record in caplog.records]
        assert "Invalid rate limit rate=-1, using default 1.0" in messages
        assert "Invalid rate limit capacity=0, using default 5" in messages
        assert all(record.levelno == logging.WARNING for record in caplog.records)

    def test_only_invalid_fields_replaced(self):
        config = RateLimitConfig(rate=4.0, capacity=0, sweep_interval=5, idle_threshold=0)
        normalized = config.normalized()
        assert normalized.rate == 4.0
        assert normalized.capacity == 5
        assert normalized.sweep_interval == 5
        assert normalized.idle_threshold == 180.0

    def test_config_is_immutable(self):
        config = RateLimitConfig()
        with pytest.raises(AttributeError):
            config.rate = 10


class TestSettings:
    """Tests for environment settings."""

    def test_defaults(self, monkeypatch):
        for name in (
            "RATE_LIMIT_RATE",
            "RATE_LIMIT_CAPACITY",
            "RATE_LIMIT_SWEEP_INTERVAL_SECONDS",
            "RATE_LIMIT_IDLE_THRESHOLD_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None).rate_limit_config()

        assert config == RateLimitConfig()

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_RATE", "2.5")
        monkeypatch.setenv("RATE_LIMIT_CAPACITY", "20")
        monkeypatch.setenv("RATE_LIMIT_SWEEP_INTERVAL_SECONDS", "30")
        monkeypatch.setenv("RATE_LIMIT_IDLE_THRESHOLD_SECONDS", "90")

        config = Settings(_env_file=None).rate_limit_config()

        assert config == RateLimitConfig(
            rate=2.5, capacity=20, sweep_interval=30.0, idle_threshold=90.0
        )

    def test_out_of_range_values_normalized_not_rejected(self, monkeypatch, caplog):
        monkeypatch.setenv("RATE_LIMIT_RATE", "0")
        monkeypatch.setenv("RATE_LIMIT_CAPACITY", "-3")

        with caplog.at_level(logging.WARNING):
            config = Settings(_env_file=None).rate_limit_config()

        assert config.rate == 1.0
        assert config.capacity == 5
        assert "Invalid rate limit rate=0.0" in caplog.text

    def test_logging_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.log_level == "INFO"
        assert settings.log_format == "text"
