"""Tests for configuration dataclasses and environment overrides."""

from __future__ import annotations

import argparse
import os

import pytest

from sentinel_locker.core.backoff import Delay, DelayKind, ExponentialBackoff
from sentinel_locker.core.config import LockerConfig
from sentinel_locker.core.exceptions import ConfigurationError


class TestLockerConfig:
    """Tests for LockerConfig defaults and validation"""

    def test_defaults(self):
        config = LockerConfig()

        assert config.stale_after_ms == 15000
        assert config.max_retries == 128
        assert config.interval_ms == 500
        assert config.backoff_policy is None
        assert config.delay_for(200) == ExponentialBackoff(interval_ms=500)(200)

    def test_default_policy_follows_interval(self):
        config = LockerConfig(interval_ms=50)

        assert config.delay_for(200).milliseconds == 50

    def test_default_policy_tracks_later_interval_changes(self):
        config = LockerConfig()
        config.interval_ms = 20

        assert config.delay_for(200).milliseconds == 20
        assert config.delay_for(0).kind is DelayKind.NEXT_TICK

    def test_custom_policy_is_used(self):
        def policy(attempt):
            return Delay.after(attempt * 10)

        config = LockerConfig(backoff_policy=policy, interval_ms=1)

        assert config.backoff_policy is policy
        assert config.delay_for(7) == Delay.after(70)

    @pytest.mark.parametrize("field", ["stale_after_ms", "max_retries", "interval_ms"])
    def test_negative_values_rejected(self, field):
        with pytest.raises(ConfigurationError) as exc_info:
            LockerConfig(**{field: -1})

        assert exc_info.value.field == field

    def test_non_numeric_value_rejected(self):
        with pytest.raises(ConfigurationError, match="must be a number"):
            LockerConfig(max_retries="lots")

    @pytest.mark.parametrize("raw", [1.9, True, float("inf")])
    def test_fractional_or_boolean_retry_count_rejected(self, raw):
        with pytest.raises(ConfigurationError) as exc_info:
            LockerConfig(max_retries=raw)

        assert exc_info.value.field == "max_retries"

    def test_whole_float_retry_count_accepted(self):
        assert LockerConfig(max_retries=4.0).max_retries == 4

    def test_boolean_delay_rejected(self):
        with pytest.raises(ConfigurationError, match="must be a number"):
            LockerConfig(stale_after_ms=False)

    def test_non_finite_value_rejected(self):
        with pytest.raises(ConfigurationError, match="finite"):
            LockerConfig(stale_after_ms=float("inf"))

    def test_non_callable_policy_rejected(self):
        with pytest.raises(ConfigurationError):
            LockerConfig(backoff_policy=42)

    def test_to_dict(self):
        assert LockerConfig(max_retries=3).to_dict() == {
            "stale_after_ms": 15000,
            "max_retries": 3,
            "interval_ms": 500,
        }


class TestLockerConfigSources:
    """Tests for building LockerConfig from the environment and CLI"""

    def test_from_env_mapping(self):
        config = LockerConfig.from_env(
            environ={
                "SENTINEL_LOCK_STALE_AFTER_MS": "5000",
                "SENTINEL_LOCK_MAX_RETRIES": " 7 ",
                "SENTINEL_LOCK_INTERVAL_MS": "",
            }
        )

        assert config.stale_after_ms == 5000
        assert config.max_retries == 7
        assert config.interval_ms == 500

    def test_from_env_custom_prefix(self):
        config = LockerConfig.from_env(prefix="APP_", environ={"APP_MAX_RETRIES": "2"})

        assert config.max_retries == 2

    def test_from_env_invalid_value(self):
        with pytest.raises(ConfigurationError) as exc_info:
            LockerConfig.from_env(environ={"SENTINEL_LOCK_MAX_RETRIES": "2.5"})

        assert exc_info.value.field == "max_retries"

    def test_from_env_loads_dotenv_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("SENTINEL_LOCK_STALE_AFTER_MS", raising=False)
        (tmp_path / ".env").write_text("SENTINEL_LOCK_STALE_AFTER_MS=2500\n", encoding="utf-8")

        try:
            config = LockerConfig.from_env()
        finally:
            os.environ.pop("SENTINEL_LOCK_STALE_AFTER_MS", None)

        assert config.stale_after_ms == 2500

    def test_environment_wins_over_dotenv_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("SENTINEL_LOCK_MAX_RETRIES", "9")
        (tmp_path / ".env").write_text("SENTINEL_LOCK_MAX_RETRIES=1\n", encoding="utf-8")

        assert LockerConfig.from_env().max_retries == 9

    def test_from_args_falls_back_to_base(self):
        args = argparse.Namespace(stale_after_ms=None, max_retries=0, interval_ms=None)
        base = LockerConfig(stale_after_ms=1000, max_retries=5, interval_ms=20)

        config = LockerConfig.from_args(args, base=base)

        assert config.stale_after_ms == 1000
        assert config.max_retries == 0
        assert config.interval_ms == 20
