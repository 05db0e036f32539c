"""
Shared pytest fixtures for edgesql tests.

This module provides:
- A local SqliteBinding store per test
- FlakyBinding, a wrapper that fails a set number of store calls
- RecordedSleep / FakeClock for deterministic retry and timing tests
- Ready-made DatabaseService instances (empty and migrated)

Usage:
    Fixtures are auto-discovered by pytest. Request them as arguments:

    @pytest.mark.asyncio
    async def test_something(migrated_db):
        ...
"""

import sys
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
import structlog

# Ensure edgesql package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from edgesql.core.database import DatabaseService
from edgesql.core.settings import DatabaseSettings, clear_settings_cache
from edgesql.core.store import SqliteBinding


# =============================================================================
# Test doubles
# =============================================================================


class RecordedSleep:
    """Async sleep replacement that records requested delays instead of waiting."""

    def __init__(self, clock: "FakeClock | None" = None) -> None:
        self.delays: list[float] = []
        self._clock = clock

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        if self._clock is not None:
            self._clock.advance(seconds)


class FakeClock:
    """Monotonic clock that only moves when told to (or by ``step`` per read)."""

    def __init__(self, start: float = 0.0, step: float = 0.0) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyStatement:
    def __init__(self, owner: "FlakyBinding", inner: Any) -> None:
        self._owner = owner
        self._inner = inner

    def bind(self, *params: Any) -> "FlakyStatement":
        return FlakyStatement(self._owner, self._inner.bind(*params))

    async def first(self) -> Any:
        self._owner.maybe_fail()
        return await self._inner.first()

    async def all(self) -> Any:
        self._owner.maybe_fail()
        return await self._inner.all()

    async def run(self) -> Any:
        self._owner.maybe_fail()
        return await self._inner.run()


class FlakyBinding:
    """Wraps a real binding and raises ``error_factory()`` for the first ``failures`` calls."""

    def __init__(
        self,
        inner: SqliteBinding,
        failures: int,
        error_factory: Callable[[], Exception] = lambda: ConnectionError("connection reset"),
    ) -> None:
        self.inner = inner
        self.remaining = failures
        self.error_factory = error_factory
        self.calls = 0

    def maybe_fail(self) -> None:
        self.calls += 1
        if self.remaining > 0:
            self.remaining -= 1
            raise self.error_factory()

    def prepare(self, sql: str) -> FlakyStatement:
        return FlakyStatement(self, self.inner.prepare(sql))

    async def batch(self, statements: list[Any]) -> Any:
        self.maybe_fail()
        return await self.inner.batch([s._inner if isinstance(s, FlakyStatement) else s for s in statements])

    async def exec(self, script: str) -> Any:
        self.maybe_fail()
        return await self.inner.exec(script)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset structlog configuration and the settings cache around every test."""
    structlog.reset_defaults()
    clear_settings_cache()
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    clear_settings_cache()


# =============================================================================
# Store and service fixtures
# =============================================================================


@pytest.fixture
def settings() -> DatabaseSettings:
    """Fast settings: 100ms linear backoff, 3 attempts, 5s slow threshold."""
    return DatabaseSettings(
        _env_file=None,
        max_retries=3,
        retry_delay_ms=100,
        query_timeout_ms=30000,
        slow_query_threshold_ms=5000,
    )


@pytest.fixture
def binding() -> Generator[SqliteBinding, None, None]:
    store = SqliteBinding(":memory:")
    yield store
    store.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleep(clock: FakeClock) -> RecordedSleep:
    return RecordedSleep(clock)


@pytest.fixture
def db(binding: SqliteBinding, settings: DatabaseSettings, sleep: RecordedSleep, clock: FakeClock) -> DatabaseService:
    return DatabaseService({"DB": binding}, settings=settings, sleep=sleep, clock=clock)


@pytest_asyncio.fixture
async def migrated_db(db: DatabaseService) -> AsyncGenerator[DatabaseService, None]:
    await db.run_migrations()
    db.reset_metrics()
    yield db


@pytest.fixture
def make_flaky(binding: SqliteBinding) -> Callable[..., FlakyBinding]:
    """Factory: ``make_flaky(failures, error_factory=...)`` wrapping the test binding."""

    def factory(failures: int, **kwargs: Any) -> FlakyBinding:
        return FlakyBinding(binding, failures, **kwargs)

    return factory
