"""Tests for core.settings module.

Covers:
- DatabaseSettings defaults
- EDGESQL_* environment overrides
- Field validation
- Cached get_settings()
"""

import pytest
from pydantic import ValidationError

from edgesql.core.settings import DatabaseSettings, clear_settings_cache, get_settings


class TestDefaults:
    def test_executor_defaults(self):
        s = DatabaseSettings(_env_file=None)
        assert s.max_retries == 3
        assert s.retry_delay_ms == 1000
        assert s.query_timeout_ms == 30000
        assert s.slow_query_threshold_ms == 5000
        assert s.retry_all_errors is True

    def test_backoff_defaults(self):
        s = DatabaseSettings(_env_file=None)
        assert s.backoff == "linear"
        assert s.retry_max_delay_ms == 60000
        assert s.retry_max_delay_seconds == 60.0
        assert s.retry_jitter is True

    def test_observability_defaults(self):
        s = DatabaseSettings(_env_file=None)
        assert s.enable_query_logging is True
        assert s.enable_metrics is True
        assert s.binding_name == "DB"

    def test_derived_seconds(self):
        s = DatabaseSettings(_env_file=None, retry_delay_ms=250, query_timeout_ms=1500)
        assert s.retry_delay_seconds == 0.25
        assert s.query_timeout_seconds == 1.5


class TestEnvOverride:
    def test_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("EDGESQL_MAX_RETRIES", "5")
        monkeypatch.setenv("EDGESQL_ENABLE_METRICS", "false")
        monkeypatch.setenv("EDGESQL_BINDING_NAME", "PRIMARY")

        s = DatabaseSettings(_env_file=None)

        assert s.max_retries == 5
        assert s.enable_metrics is False
        assert s.binding_name == "PRIMARY"

    def test_backoff_from_env(self, monkeypatch):
        monkeypatch.setenv("EDGESQL_BACKOFF", "exponential")
        monkeypatch.setenv("EDGESQL_RETRY_JITTER", "false")

        s = DatabaseSettings(_env_file=None)

        assert s.backoff == "exponential"
        assert s.retry_jitter is False

    def test_unprefixed_variables_ignored(self, monkeypatch):
        monkeypatch.setenv("MAX_RETRIES", "9")
        assert DatabaseSettings(_env_file=None).max_retries == 3

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("EDGESQL_SLOW_QUERY_THRESHOLD_MS=100\n")

        s = DatabaseSettings(_env_file=env_file)

        assert s.slow_query_threshold_ms == 100


class TestValidation:
    @pytest.mark.parametrize(
        "field",
        [
            "max_retries",
            "retry_delay_ms",
            "retry_max_delay_ms",
            "query_timeout_ms",
            "slow_query_threshold_ms",
        ],
    )
    def test_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            DatabaseSettings(_env_file=None, **{field: 0})

    def test_unknown_backoff(self):
        with pytest.raises(ValidationError):
            DatabaseSettings(_env_file=None, backoff="fibonacci")

    def test_bad_env_value(self, monkeypatch):
        monkeypatch.setenv("EDGESQL_MAX_RETRIES", "many")
        with pytest.raises(ValidationError):
            DatabaseSettings(_env_file=None)


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_force_reload(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("EDGESQL_MAX_RETRIES", "7")

        assert get_settings() is first
        assert get_settings(_force_reload=True).max_retries == 7

    def test_clear_cache(self):
        first = get_settings()
        clear_settings_cache()
        assert get_settings() is not first
