"""Retry logic with exponential backoff for balance fetches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Client errors that are still worth retrying (request timeout, rate limit)
RETRYABLE_CLIENT_STATUSES = frozenset({408, 429})


def is_transient_error(error: BaseException) -> bool:
    """
    Decide whether a failed fetch should be retried.

    Errors without an HTTP status (network failures, timeouts, arbitrary
    exceptions) are always retried. Errors carrying a 4xx ``status_code``
    are permanent, except for 408 and 429.

    Parameters
    ----------
    error : BaseException
        Exception raised by the fetch

    Returns
    -------
    bool
        True if the fetch should be attempted again

    """
    status = getattr(error, "status_code", None)
    if not isinstance(status, int):
        return True
    if 400 <= status < 500:
        return status in RETRYABLE_CLIENT_STATUSES
    return True


class RetryConfig:
    """
    Configuration for retry behavior.

    Parameters
    ----------
    max_retries : int
        Total number of attempts, including the first one
    base_delay : float
        Delay in seconds after the first failed attempt
    max_delay : float | None
        Upper bound for a single delay. Uncapped if None.
    exponential_base : float
        Base for exponential backoff calculation
    is_retryable : Callable[[BaseException], bool] | None
        Predicate classifying errors. Uses :func:`is_transient_error` if None.

    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float | None = None,
        exponential_base: float = 2.0,
        is_retryable: Callable[[BaseException], bool] | None = None,
    ) -> None:
        if max_retries < 1:
            msg = f"max_retries must be at least 1, got {max_retries}"
            raise ValueError(msg)
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.is_retryable = is_retryable or is_transient_error

    def get_delay(self, attempt: int) -> float:
        """
        Calculate the wait after a failed attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            Number of the attempt that just failed (1-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        if self.max_delay is not None:
            return min(delay, self.max_delay)
        return delay


async def retry_fetch(
    fetch_fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    attempt: int = 1,
) -> T:
    """
    Await ``fetch_fn`` and retry it with exponential backoff on failure.

    Parameters
    ----------
    fetch_fn : Callable[[], Awaitable[T]]
        Zero-argument callable returning an awaitable
    config : RetryConfig | None
        Retry configuration. Uses default config if None.
    attempt : int
        Current attempt number (1-indexed)

    Returns
    -------
    T
        Result of the first successful attempt

    Raises
    ------
    Exception
        The error of the last attempt, unchanged, once retries are exhausted
        or as soon as a non-retryable error is seen

    """
    if config is None:
        config = RetryConfig()

    try:
        return await fetch_fn()
    except Exception as e:
        if attempt >= config.max_retries or not config.is_retryable(e):
            raise

        delay = config.get_delay(attempt)
        logger.warning(
            "Fetch failed (attempt %d/%d), retrying in %.1fs: %s",
            attempt,
            config.max_retries,
            delay,
            e,
        )
        await asyncio.sleep(delay)

    return await retry_fetch(fetch_fn, config, attempt + 1)


def with_retry(
    config: RetryConfig | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator to add retry logic with exponential backoff to a coroutine function.

    Parameters
    ----------
    config : RetryConfig | None
        Retry configuration. Uses default config if None.

    Returns
    -------
    Callable
        Decorated coroutine function with retry logic

    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            return await retry_fetch(lambda: func(*args, **kwargs), config)

        return wrapper

    return decorator
