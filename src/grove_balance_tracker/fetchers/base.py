"""Base resource fetcher with the shared read-through pipeline."""

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from grove_balance_tracker.core.interfaces import BalanceDataSource
from grove_balance_tracker.core.listeners import ListenerRegistry
from grove_balance_tracker.core.models import ResourceType
from grove_balance_tracker.sync.cache import BalanceCache, make_key
from grove_balance_tracker.sync.inflight import InFlightRequests
from grove_balance_tracker.sync.retry import RetryConfig, retry_fetch

logger = logging.getLogger(__name__)


class BaseResourceFetcher(ABC):
    """
    Abstract base class for resource fetchers.

    Subclasses only implement :meth:`fetch_remote`; caching, retries,
    de-duplication, and listener notification are shared.

    Attributes
    ----------
    resource_type : ResourceType
        Resource type handled by the fetcher (must be set in subclass)

    Parameters
    ----------
    data_source : BalanceDataSource
        Remote balance source
    cache : BalanceCache
        Shared balance cache
    listeners : ListenerRegistry
        Shared listener registry
    retry_config : RetryConfig
        Retry behavior for remote calls
    in_flight : InFlightRequests
        Shared in-flight request tracker

    """

    resource_type: ClassVar[ResourceType]

    def __init__(
        self,
        data_source: BalanceDataSource,
        cache: BalanceCache,
        listeners: ListenerRegistry,
        retry_config: RetryConfig,
        in_flight: InFlightRequests,
    ) -> None:
        if getattr(self, "resource_type", None) is None:
            msg = f"{self.__class__.__name__} must define 'resource_type' attribute"
            raise ValueError(msg)
        self.data_source = data_source
        self.cache = cache
        self.listeners = listeners
        self.retry_config = retry_config
        self.in_flight = in_flight

    def cache_key(self, account_id: str) -> str:
        return make_key(self.resource_type, account_id)

    @abstractmethod
    async def fetch_remote(self, account_id: str) -> Any:
        """
        Fetch the current value from the data source, without caching.

        Parameters
        ----------
        account_id : str
            Hedera account id

        Returns
        -------
        Any
            Current value

        """

    async def fetch(self, account_id: str) -> Any:
        """
        Return the value for an account, from cache while it is fresh.

        On a miss the remote fetch runs with retries, the cache is updated,
        and listeners are notified.

        Parameters
        ----------
        account_id : str
            Hedera account id

        Returns
        -------
        Any
            Cached or freshly fetched value

        Raises
        ------
        Exception
            The data source error once retries are exhausted

        """
        key = self.cache_key(account_id)
        if self.cache.is_valid(key):
            logger.debug("Cache hit for %s", key)
            return self.cache.get(key)

        return await self.in_flight.run(key, lambda: self._fetch_and_publish(key, account_id))

    async def refresh(self, account_id: str) -> Any:
        """Drop the cached value and fetch a fresh one."""
        self.cache.clear(self.cache_key(account_id))
        return await self.fetch(account_id)

    async def _fetch_and_publish(self, key: str, account_id: str) -> Any:
        try:
            value = await retry_fetch(lambda: self.fetch_remote(account_id), self.retry_config)
        except Exception as e:
            logger.debug("Failed to fetch %s balance for %s: %s", self.resource_type, account_id, e)
            raise

        self.cache.set(key, value)
        self.listeners.notify_listeners(self.resource_type, value)
        return value
