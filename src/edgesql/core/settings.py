"""Database layer settings.

``DatabaseSettings`` holds every knob of the resilient executor, the metrics
collector and logging. Values come from keyword arguments, ``EDGESQL_*``
environment variables or a ``.env`` file, validated at construction.

Features:
    - **DatabaseSettings:** retry, timeout, slow-query and logging knobs
    - **env_prefix:** ``EDGESQL_MAX_RETRIES=5`` overrides ``max_retries``
    - **.env file support:** Automatic loading via pydantic-settings
    - **get_settings():** Cached process-wide instance

Examples:
    >>> from edgesql.core.settings import DatabaseSettings
    >>> s = DatabaseSettings(max_retries=5, retry_delay_ms=250)
    >>> s.retry_delay_seconds
    0.25

Tags:
    settings, configuration, pydantic, environment, edgesql
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Settings for the data-access layer.

    Fields
    ──────
    max_retries             : Total attempts per query/execute call
    retry_delay_ms          : Linear backoff base; attempt n waits n * base
    query_timeout_ms        : Per-attempt deadline
    slow_query_threshold_ms : Calls slower than this count as slow queries
    enable_query_logging    : Debug log line per attempt
    enable_metrics          : Record counters and timings
    retry_all_errors        : Retry every failure (True) or only transient ones
    backoff                 : Retry strategy: linear, exponential or none
    retry_max_delay_ms      : Upper bound on any single backoff delay
    retry_jitter            : Randomise exponential delays by up to 25%
    binding_name            : Key of the store binding in the environment mapping
    """

    model_config = SettingsConfigDict(
        env_prefix="EDGESQL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Executor ─────────────────────────────────────────────────
    max_retries: int = Field(default=3, gt=0)
    retry_delay_ms: int = Field(default=1000, gt=0)
    query_timeout_ms: int = Field(default=30000, gt=0)
    slow_query_threshold_ms: int = Field(default=5000, gt=0)
    retry_all_errors: bool = Field(
        default=True,
        description="Retry every failure identically; False consults the error classifier",
    )
    backoff: Literal["linear", "exponential", "none"] = Field(default="linear")
    retry_max_delay_ms: int = Field(default=60000, gt=0)
    retry_jitter: bool = Field(default=True)

    # ── Binding ──────────────────────────────────────────────────
    binding_name: str = Field(default="DB")

    # ── Observability ────────────────────────────────────────────
    enable_query_logging: bool = Field(default=True)
    enable_metrics: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    service_name: str = Field(default="edgesql")

    # ── Derived properties ───────────────────────────────────────

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000

    @property
    def retry_max_delay_seconds(self) -> float:
        return self.retry_max_delay_ms / 1000

    @property
    def query_timeout_seconds(self) -> float:
        return self.query_timeout_ms / 1000


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, DatabaseSettings] = {}


def get_settings(*, _force_reload: bool = False) -> DatabaseSettings:
    """Load, validate, and cache a :class:`DatabaseSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = DatabaseSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = ["DatabaseSettings", "get_settings", "clear_settings_cache"]
