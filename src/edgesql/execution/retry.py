"""Retry strategies and per-call retry state.

The resilient executor builds its strategy from ``DatabaseSettings.backoff``:
``linear`` (attempt *n* waits ``n * retry_delay``, the default),
``exponential`` (doubling, optional jitter) or ``none``. Any
:class:`RetryStrategy` can also be injected.

Example:
    >>> from edgesql.execution.retry import LinearBackoff
    >>>
    >>> strategy = LinearBackoff(max_retries=3, base_delay=1.0, increment=1.0)
    >>> [strategy.next_delay(attempt) for attempt in range(2)]
    [1.0, 2.0]
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class RetryStrategy(ABC):
    """Abstract base for retry strategies."""

    max_retries: int

    @abstractmethod
    def next_delay(self, attempt: int) -> float:
        """Calculate delay before next retry attempt.

        Args:
            attempt: Zero-based retry number (0 = first retry)

        Returns:
            Delay in seconds before next attempt
        """
        ...

    @abstractmethod
    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Determine if another attempt should be made.

        Args:
            attempt: Number of attempts made so far
            error: The exception that caused the failure

        Returns:
            True if should retry, False otherwise
        """
        ...


@dataclass
class LinearBackoff(RetryStrategy):
    """Linear backoff strategy.

    Delay = base_delay + (increment * attempt), capped at ``max_delay`` if set.
    With ``base_delay == increment`` the n-th retry waits ``n * base_delay``.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    increment: float = 1.0
    max_delay: float | None = None

    def next_delay(self, attempt: int) -> float:
        """Calculate linear backoff delay."""
        delay = self.base_delay + (self.increment * attempt)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Check if retry should be attempted."""
        return attempt < self.max_retries


@dataclass
class ExponentialBackoff(RetryStrategy):
    """Exponential backoff with optional jitter.

    Delay = min(base_delay * (multiplier ** attempt), max_delay) + jitter

    Attributes:
        max_retries: Total number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap in seconds
        multiplier: Exponential multiplier (default: 2)
        jitter: Add randomness to prevent thundering herd
        jitter_range: Range of jitter as fraction of delay (0.0-1.0)
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_range: float = 0.25

    def next_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay."""
        delay = min(
            self.base_delay * (self.multiplier ** attempt),
            self.max_delay,
        )

        if self.jitter:
            jitter_amount = delay * self.jitter_range
            delay += random.uniform(-jitter_amount, jitter_amount)
            delay = max(0, delay)

        return delay

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Check if retry should be attempted."""
        return attempt < self.max_retries


@dataclass
class NoRetry(RetryStrategy):
    """No retry - fail immediately."""

    max_retries: int = 1

    def next_delay(self, attempt: int) -> float:
        """No delay needed."""
        return 0.0

    def should_retry(self, attempt: int, error: Exception | None = None) -> bool:
        """Never retry."""
        return False


@dataclass
class RetryContext:
    """Transient retry state for one call: attempt counter and last error.

    Never persisted; discarded once the call resolves.

    Example:
        >>> ctx = RetryContext(LinearBackoff(max_retries=3))
        >>> ctx.record_failure(ConnectionError("reset"))
        >>> ctx.should_retry(), ctx.next_delay()
        (True, 1.0)
    """

    strategy: RetryStrategy
    attempt: int = field(default=0, init=False)
    last_error: Exception | None = field(default=None, init=False)
    delays: list[float] = field(default_factory=list, init=False)

    def record_failure(self, error: Exception) -> None:
        """Record a failed attempt."""
        self.attempt += 1
        self.last_error = error

    def should_retry(self, retryable: bool = True) -> bool:
        """Check if another attempt is allowed."""
        return retryable and self.strategy.should_retry(self.attempt, self.last_error)

    def next_delay(self) -> float:
        """Get delay before the next attempt and remember it."""
        delay = self.strategy.next_delay(max(self.attempt - 1, 0))
        self.delays.append(delay)
        return delay

    @property
    def attempts(self) -> int:
        """Number of failed attempts made."""
        return self.attempt


__all__ = [
    "RetryStrategy",
    "LinearBackoff",
    "ExponentialBackoff",
    "NoRetry",
    "RetryContext",
]
