"""Tests for retry strategies."""

import pytest

from edgesql.execution.retry import (
    ExponentialBackoff,
    LinearBackoff,
    NoRetry,
    RetryContext,
)


class TestLinearBackoff:
    def test_delays_grow_linearly(self):
        strategy = LinearBackoff(max_retries=5, base_delay=0.1, increment=0.1)
        assert [strategy.next_delay(a) for a in range(3)] == pytest.approx([0.1, 0.2, 0.3])

    def test_max_delay_caps(self):
        strategy = LinearBackoff(base_delay=1.0, increment=1.0, max_delay=2.5)
        assert strategy.next_delay(5) == 2.5

    def test_should_retry_until_max(self):
        strategy = LinearBackoff(max_retries=3)
        assert strategy.should_retry(1) is True
        assert strategy.should_retry(2) is True
        assert strategy.should_retry(3) is False


class TestExponentialBackoff:
    def test_without_jitter(self):
        strategy = ExponentialBackoff(base_delay=1.0, multiplier=2.0, jitter=False)
        assert [strategy.next_delay(a) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped(self):
        strategy = ExponentialBackoff(base_delay=1.0, max_delay=5.0, jitter=False)
        assert strategy.next_delay(10) == 5.0

    def test_jitter_stays_in_range(self):
        strategy = ExponentialBackoff(base_delay=4.0, jitter=True, jitter_range=0.25)
        for _ in range(50):
            assert 3.0 <= strategy.next_delay(0) <= 5.0


class TestNoRetry:
    def test_never_retries(self):
        strategy = NoRetry()
        assert strategy.should_retry(0) is False
        assert strategy.next_delay(0) == 0.0


class TestRetryContext:
    def test_tracks_failures(self):
        ctx = RetryContext(LinearBackoff(max_retries=3, base_delay=0.1, increment=0.1))
        err = ConnectionError("reset")

        ctx.record_failure(err)

        assert ctx.attempts == 1
        assert ctx.last_error is err

    def test_delays_follow_attempt_number(self):
        ctx = RetryContext(LinearBackoff(max_retries=3, base_delay=0.1, increment=0.1))

        ctx.record_failure(ConnectionError("1"))
        first = ctx.next_delay()
        ctx.record_failure(ConnectionError("2"))
        second = ctx.next_delay()

        assert [first, second] == pytest.approx([0.1, 0.2])
        assert ctx.delays == [first, second]

    def test_exhaustion(self):
        ctx = RetryContext(LinearBackoff(max_retries=2))
        ctx.record_failure(ConnectionError("1"))
        assert ctx.should_retry() is True
        ctx.record_failure(ConnectionError("2"))
        assert ctx.should_retry() is False

    def test_non_retryable_stops_immediately(self):
        ctx = RetryContext(LinearBackoff(max_retries=5))
        ctx.record_failure(ValueError("bad"))
        assert ctx.should_retry(retryable=False) is False
