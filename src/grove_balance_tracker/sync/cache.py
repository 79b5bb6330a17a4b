"""TTL-based caching for balance responses."""

import time
from collections.abc import Callable
from typing import Any


class CacheEntry:
    """
    Cached balance value with its fetch timestamp.

    Parameters
    ----------
    value : Any
        Cached value
    fetched_at : float
        Clock reading taken when the value was stored

    """

    __slots__ = ("fetched_at", "value")

    def __init__(self, value: Any, fetched_at: float) -> None:
        self.value = value
        self.fetched_at = fetched_at

    def age(self, now: float) -> float:
        """Seconds elapsed since the entry was stored."""
        return now - self.fetched_at


def make_key(resource_type: str, account_id: str) -> str:
    """
    Build the cache key for a resource type and account.

    Parameters
    ----------
    resource_type : str
        Resource type (e.g., 'token', 'usdc')
    account_id : str
        Hedera account id (e.g., '0.0.1234')

    Returns
    -------
    str
        Composite key such as ``token_0.0.1234``

    """
    return f"{resource_type}_{account_id}"


class BalanceCache:
    """
    In-memory balance cache with lazily evaluated TTL.

    Entries are never expired in the background: freshness is decided on
    read by :meth:`is_valid`. Stale values stay available through
    :meth:`get` until overwritten or cleared.

    Parameters
    ----------
    ttl : float
        Time-to-live in seconds
    clock : Callable[[], float] | None
        Monotonic clock used for timestamps. Uses ``time.monotonic`` if None.

    """

    def __init__(self, ttl: float = 30.0, clock: Callable[[], float] | None = None) -> None:
        self.ttl = ttl
        self._clock = clock or time.monotonic
        self._entries: dict[str, CacheEntry] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        """
        Get the stored value regardless of its age.

        Parameters
        ----------
        key : str
            Cache key

        Returns
        -------
        Any | None
            Stored value, or None if the key is absent

        """
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        """
        Store a value and stamp it with the current clock reading.

        Parameters
        ----------
        key : str
            Cache key
        value : Any
            Value to cache

        """
        self._entries[key] = CacheEntry(value, self._clock())

    def is_valid(self, key: str) -> bool:
        """
        Check whether a fresh entry exists for the key.

        Parameters
        ----------
        key : str
            Cache key

        Returns
        -------
        bool
            True if an entry exists and is younger than the TTL

        """
        entry = self._entries.get(key)
        if entry is None:
            return False
        return entry.age(self._clock()) < self.ttl

    def get_valid(self, key: str) -> Any | None:
        """Return the value if it is still fresh, None otherwise."""
        if self.is_valid(key):
            return self._entries[key].value
        return None

    def clear(self, key: str | None = None) -> None:
        """
        Remove one entry, or every entry when no key is given.

        Parameters
        ----------
        key : str | None
            Cache key to drop. Clears the whole cache if None.

        """
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def cleanup_expired(self) -> int:
        """
        Remove all stale entries from the cache.

        Returns
        -------
        int
            Number of entries removed

        """
        now = self._clock()
        expired_keys = [key for key, entry in self._entries.items() if entry.age(now) >= self.ttl]
        for key in expired_keys:
            del self._entries[key]
        return len(expired_keys)
