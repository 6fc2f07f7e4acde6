"""Backoff schedules and retry utilities."""

import time
import random
from typing import Callable, TypeVar, Optional, Type, Tuple
from functools import wraps

T = TypeVar('T')


class ExponentialBackoff:
    """
    Multiplicative backoff capped at a ceiling.

    Each call to ``next_interval`` returns the current delay and advances the
    schedule: ``interval = min(interval * factor, maximum)``.

    Example:
        >>> backoff = ExponentialBackoff(initial=5, factor=1.5, maximum=60)
        >>> [round(backoff.next_interval(), 2) for _ in range(4)]
        [5, 7.5, 11.25, 16.88]
    """

    def __init__(
        self,
        initial: float = 5.0,
        factor: float = 1.5,
        maximum: float = 60.0
    ):
        if initial <= 0:
            raise ValueError(f"Initial interval must be positive, got: {initial}")
        if factor < 1:
            raise ValueError(f"Backoff factor must be >= 1, got: {factor}")
        if maximum < initial:
            raise ValueError(f"Maximum interval {maximum} is below initial {initial}")

        self.initial = initial
        self.factor = factor
        self.maximum = maximum
        self._current = initial

    @property
    def current(self) -> float:
        """Delay the next call to ``next_interval`` will return."""
        return self._current

    def next_interval(self) -> float:
        """Return the current delay and advance the schedule."""
        interval = self._current
        self._current = min(self._current * self.factor, self.maximum)
        return interval

    def reset(self) -> None:
        self._current = self.initial


def retry_with_backoff(
    max_attempts: int = 3,
    backoff_seconds: float = 1.0,
    exponential: bool = True,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Decorator for retrying a function with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        backoff_seconds: Initial backoff time in seconds
        exponential: Use exponential backoff (2^attempt * backoff_seconds)
        jitter: Add random jitter to backoff time
        exceptions: Tuple of exception types to catch and retry

    Returns:
        Decorated function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            last_exception: Optional[Exception] = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e

                    if attempt == max_attempts:
                        raise

                    if exponential:
                        wait_time = backoff_seconds * (2 ** (attempt - 1))
                    else:
                        wait_time = backoff_seconds * attempt

                    if jitter:
                        wait_time = wait_time * (0.5 + random.random())

                    time.sleep(wait_time)

            if last_exception:
                raise last_exception
            raise RuntimeError("Retry logic failed unexpectedly")

        return wrapper
    return decorator
