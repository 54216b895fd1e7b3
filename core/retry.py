"""
Retry Executor

Bounded-attempt retry with exponential backoff for calls to external
collaborators (ledger, blob publisher).

Rules:
- At most `max_attempts` calls are made.
- Delay before attempt n+1 is min(base_delay * multiplier**(n-1), max_delay).
- Only exceptions listed in `retry_on` are retried; anything else
  propagates immediately.
- An optional caller-owned deadline (absolute, in `clock` seconds) stops
  retrying when the next sleep would cross it.
- An in-flight call is never cancelled.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, TypeVar

from core.errors import ExternalUnavailableException

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExecutor:
    """
    Run a callable with bounded retries.

    Usage:
        retry = RetryExecutor(max_attempts=3, base_delay=3.0)
        retry.run(ledger.write_root, root, description="write root")
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        multiplier: float = 2.0,
        max_delay: float = 30.0,
        retry_on: tuple[type[BaseException], ...] = (ExternalUnavailableException,),
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Retry delays must be non-negative")
        if multiplier < 1:
            raise ValueError(f"multiplier must be at least 1, got {multiplier}")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.multiplier = multiplier
        self.max_delay = max_delay
        self.retry_on = retry_on
        self._sleep = sleep
        self._clock = clock

    def delay_for(self, attempt: int) -> float:
        """Delay to wait after failed attempt number `attempt` (1-based)."""
        return min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)

    def run(
        self,
        fn: Callable[..., T],
        *args: Any,
        deadline: Optional[float] = None,
        description: str = "operation",
        **kwargs: Any,
    ) -> T:
        """
        Call fn(*args, **kwargs), retrying on the configured exceptions.

        Args:
            fn: Callable to invoke
            deadline: Absolute time (per the executor clock) after which no
                further attempt is started
            description: Label used in log messages

        Returns:
            Whatever fn returns on the first successful attempt

        Raises:
            The last exception raised by fn once attempts or time run out
        """
        attempt = 1
        while True:
            try:
                return fn(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.max_attempts:
                    logger.warning(
                        f"{description} failed after {attempt} attempt(s): {e}"
                    )
                    raise

                delay = self.delay_for(attempt)
                if deadline is not None and self._clock() + delay > deadline:
                    logger.warning(
                        f"{description} failed on attempt {attempt}; "
                        f"deadline reached, not retrying: {e}"
                    )
                    raise

                logger.warning(
                    f"{description} failed (attempt {attempt}/{self.max_attempts}), "
                    f"retrying in {delay:.2f}s: {e}"
                )
                self._sleep(delay)
                attempt += 1


__all__ = ["RetryExecutor"]
