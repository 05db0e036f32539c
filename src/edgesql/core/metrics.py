"""Query metrics accumulator.

One :class:`MetricsCollector` is owned by each service instance and shared by
every concurrent call made through it. All mutations happen under a lock,
so counters and the running mean never lose updates when calls complete
concurrently (from event-loop tasks or worker threads).

Invariants:
    - each terminal call increments ``total_queries`` once and exactly one of
      ``successful_queries`` / ``failed_queries``
    - ``average_query_time`` is the mean over successful calls since the
      last reset, updated incrementally (Welford)

Example:
    >>> metrics = MetricsCollector()
    >>> metrics.record(success=True, duration_ms=12.0)
    >>> metrics.record(success=True, duration_ms=18.0)
    >>> metrics.snapshot().average_query_time
    15.0
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime

from pydantic import BaseModel


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class MetricsSnapshot(BaseModel):
    """Point-in-time copy of the accumulator."""

    total_queries: int = 0
    successful_queries: int = 0
    failed_queries: int = 0
    average_query_time: float = 0.0
    slow_queries: int = 0
    connection_errors: int = 0
    last_error: str | None = None
    last_error_time: str | None = None

    @property
    def error_rate(self) -> float:
        if self.total_queries == 0:
            return 0.0
        return self.failed_queries / self.total_queries


class MetricsCollector:
    """Thread-safe counters and running mean for executor calls."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._lock = threading.Lock()
        self._state = MetricsSnapshot()

    def record(
        self,
        success: bool,
        duration_ms: float,
        *,
        error: str | None = None,
        slow: bool = False,
    ) -> None:
        """Record one terminal call outcome.

        The counters, the error stamp and the slow flag land under one lock
        acquisition, so a concurrent :meth:`reset` never splits them.
        """
        if not self.enabled:
            return
        with self._lock:
            state = self._state
            state.total_queries += 1
            if success:
                state.successful_queries += 1
                n = state.successful_queries
                state.average_query_time += (duration_ms - state.average_query_time) / n
            else:
                state.failed_queries += 1
            if error is not None:
                state.last_error = error
                state.last_error_time = utcnow().isoformat()
            if slow:
                state.slow_queries += 1

    def record_connection_error(self) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._state.connection_errors += 1

    def snapshot(self) -> MetricsSnapshot:
        """Return a copy, never a live reference."""
        with self._lock:
            return self._state.model_copy()

    def reset(self) -> None:
        with self._lock:
            self._state = MetricsSnapshot()


__all__ = ["MetricsSnapshot", "MetricsCollector"]
