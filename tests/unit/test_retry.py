"""
Retry Executor Unit Tests
Tests for core/retry.py
"""
import pytest

from core.errors import ExternalUnavailableException
from core.retry import RetryExecutor


class Flaky:
    """Fails `failures` times, then returns 'ok'."""

    def __init__(self, failures: int, exc: Exception | None = None):
        self.failures = failures
        self.calls = 0
        self.exc = exc or ExternalUnavailableException("down", service="ledger")

    def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def retry(sleeps):
    return RetryExecutor(max_attempts=3, base_delay=1.0, multiplier=2.0, sleep=sleeps.append)


class TestRetryExecutor:
    """Tests for RetryExecutor.run."""

    def test_success_first_try(self, retry, sleeps):
        """No retry and no sleep on success."""
        fn = Flaky(0)
        assert retry.run(fn) == "ok"
        assert fn.calls == 1
        assert sleeps == []

    def test_recovers_after_failures(self, retry, sleeps):
        """Transient failures are retried with exponential backoff."""
        fn = Flaky(2)
        assert retry.run(fn) == "ok"
        assert fn.calls == 3
        assert sleeps == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self, retry):
        """The last error propagates after max_attempts calls."""
        fn = Flaky(5)
        with pytest.raises(ExternalUnavailableException):
            retry.run(fn)
        assert fn.calls == 3

    def test_non_retryable_propagates_immediately(self, retry):
        """Errors outside retry_on are not retried."""
        fn = Flaky(1, exc=ValueError("bad"))
        with pytest.raises(ValueError):
            retry.run(fn)
        assert fn.calls == 1

    def test_max_delay_caps_backoff(self):
        """Delays never exceed max_delay."""
        r = RetryExecutor(base_delay=3.0, multiplier=10.0, max_delay=5.0)
        assert r.delay_for(1) == 3.0
        assert r.delay_for(2) == 5.0
        assert r.delay_for(3) == 5.0

    def test_deadline_stops_retrying(self, sleeps):
        """No further attempt starts once the next sleep would cross the deadline."""
        r = RetryExecutor(
            max_attempts=5, base_delay=10.0, sleep=sleeps.append, clock=lambda: 100.0
        )
        fn = Flaky(5)
        with pytest.raises(ExternalUnavailableException):
            r.run(fn, deadline=105.0)
        assert fn.calls == 1
        assert sleeps == []

    def test_arguments_forwarded(self, retry):
        """Positional and keyword arguments reach the callable."""
        assert retry.run(lambda a, b=0: a + b, 2, b=3) == 5

    def test_invalid_configuration(self):
        """Non-positive attempts and shrinking multipliers are rejected."""
        with pytest.raises(ValueError):
            RetryExecutor(max_attempts=0)
        with pytest.raises(ValueError):
            RetryExecutor(multiplier=0.5)
        with pytest.raises(ValueError):
            RetryExecutor(base_delay=-1)
