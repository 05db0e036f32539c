"""Retry strategies for the resilient executor."""

from edgesql.execution.retry import (
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    RetryContext,
    RetryStrategy,
)

__all__ = [
    "ExponentialBackoff",
    "LinearBackoff",
    "NoRetry",
    "RetryContext",
    "RetryStrategy",
]
