"""Retry utilities with configurable backoff."""

import time
import random
from typing import Callable, TypeVar, Optional, Type, Tuple

from vidrelay.shared.types import Sleeper

T = TypeVar('T')

BACKOFF_MODES = ('fixed', 'linear', 'exponential')


class RetryStrategy:
    """
    Configurable retry strategy.

    max_attempts=None retries until the call succeeds or should_stop()
    turns true. Callers choose the policy; nothing in the delivery path
    retries on its own.
    """

    def __init__(
        self,
        max_attempts: Optional[int] = 3,
        backoff_seconds: float = 1.0,
        backoff: str = 'exponential',
        jitter: bool = True,
        max_backoff: float = 60.0,
        exceptions: Tuple[Type[Exception], ...] = (Exception,),
        sleep: Sleeper = time.sleep
    ):
        if backoff not in BACKOFF_MODES:
            raise ValueError(f"Unknown backoff mode: {backoff}")
        if max_attempts is not None and max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.backoff = backoff
        self.jitter = jitter
        self.max_backoff = max_backoff
        self.exceptions = exceptions
        self._sleep = sleep

    def execute(
        self,
        func: Callable[..., T],
        *args,
        on_retry: Optional[Callable[[int, Exception, float], None]] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        **kwargs
    ) -> T:
        """
        Execute a function with retry logic.

        Args:
            func: Function to execute
            *args: Positional arguments for the function
            on_retry: Called as (attempt, error, wait_seconds) before each backoff
            should_stop: Polled after each failure and after each backoff;
                True re-raises the last error instead of trying again
            **kwargs: Keyword arguments for the function

        Returns:
            Function result

        Raises:
            Last exception if all attempts fail or a stop was requested
        """
        attempt = 0

        while True:
            attempt += 1
            try:
                return func(*args, **kwargs)
            except self.exceptions as e:
                if self.max_attempts is not None and attempt >= self.max_attempts:
                    raise
                if should_stop is not None and should_stop():
                    raise

                wait_time = self._calculate_backoff(attempt)
                if on_retry is not None:
                    on_retry(attempt, e, wait_time)
                self._sleep(wait_time)

                # A stop requested during the backoff wins over another attempt
                if should_stop is not None and should_stop():
                    raise

    def _calculate_backoff(self, attempt: int) -> float:
        """Calculate backoff time for given attempt number."""
        if self.backoff == 'exponential':
            wait_time = self.backoff_seconds * (2 ** (attempt - 1))
        elif self.backoff == 'linear':
            wait_time = self.backoff_seconds * attempt
        else:
            wait_time = self.backoff_seconds

        wait_time = min(wait_time, self.max_backoff)

        if self.jitter:
            wait_time = wait_time * (0.5 + random.random())

        return wait_time
