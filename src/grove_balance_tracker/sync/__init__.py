"""Sync layer with TTL caching, retry logic, and in-flight request de-duplication."""

from grove_balance_tracker.sync.cache import BalanceCache, CacheEntry, make_key
from grove_balance_tracker.sync.inflight import InFlightRequests
from grove_balance_tracker.sync.retry import RetryConfig, is_transient_error, retry_fetch, with_retry

__all__ = [
    "BalanceCache",
    "CacheEntry",
    "InFlightRequests",
    "RetryConfig",
    "is_transient_error",
    "make_key",
    "retry_fetch",
    "with_retry",
]
