"""Balance poller orchestrating periodic fetching, caching, and notification."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

# Import all fetchers to trigger auto-registration
from grove_balance_tracker import fetchers  # noqa: F401
from grove_balance_tracker.confirmation import FixedDelayConfirmer
from grove_balance_tracker.core.errors import NoAccountError
from grove_balance_tracker.core.interfaces import AccountProvider, BalanceDataSource, TransactionConfirmer
from grove_balance_tracker.core.listeners import BalanceListener, ListenerRegistry, Subscription
from grove_balance_tracker.core.models import DEFAULT_RESYNC_TYPES, PollConfig, ResourceType
from grove_balance_tracker.core.registry import FetcherRegistry
from grove_balance_tracker.fetchers.base import BaseResourceFetcher
from grove_balance_tracker.sync.cache import BalanceCache, make_key
from grove_balance_tracker.sync.inflight import InFlightRequests
from grove_balance_tracker.sync.retry import RetryConfig

logger = logging.getLogger(__name__)


class BalancePoller:
    """
    Keeps the balances of the connected account fresh.

    Workflow:
    1. A single timer task runs a poll cycle immediately, then every ``interval``
    2. Each cycle fans out to every resource fetcher concurrently
    3. Fetchers serve fresh values from the cache or fetch with retries
    4. Fresh values are cached and pushed to listeners

    Parameters
    ----------
    data_source : BalanceDataSource
        Remote source of balance data
    account_provider : AccountProvider
        Provides the connected account
    config : PollConfig | None
        Polling configuration. Uses defaults if None.
    confirmer : TransactionConfirmer | None
        Used by :meth:`refresh_after_transaction`. Waits
        ``config.confirmation_timeout`` seconds if None.
    clock : Callable[[], float] | None
        Clock for cache timestamps. Uses ``time.monotonic`` if None.

    """

    def __init__(
        self,
        data_source: BalanceDataSource,
        account_provider: AccountProvider,
        config: PollConfig | None = None,
        confirmer: TransactionConfirmer | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.data_source = data_source
        self.account_provider = account_provider
        self.config = config or PollConfig()
        self.confirmer = confirmer or FixedDelayConfirmer(self.config.confirmation_timeout)

        self.cache = BalanceCache(ttl=self.config.cache_ttl, clock=clock)
        self.listeners = ListenerRegistry()
        self.in_flight = InFlightRequests()
        self.retry_config = RetryConfig(
            max_retries=self.config.max_retries,
            base_delay=self.config.base_retry_delay,
        )

        self._fetchers: dict[ResourceType, BaseResourceFetcher] = {}
        for resource_type in ResourceType:
            fetcher_class = FetcherRegistry.get_fetcher(resource_type)
            self._fetchers[resource_type] = fetcher_class(
                self.data_source,
                self.cache,
                self.listeners,
                self.retry_config,
                self.in_flight,
            )

        self._timer: asyncio.Task | None = None
        self._background: set[asyncio.Task] = set()

    # Polling lifecycle

    @property
    def is_polling(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def start_polling(self) -> None:
        """
        Start periodic polling. Does nothing if polling is already active.

        Must be called from a running event loop. The first poll cycle starts
        right away; later cycles follow ``config.interval`` seconds after the
        previous one completes.

        """
        if self.is_polling:
            logger.debug("Balance polling already active")
            return

        logger.info("Starting balance polling every %.1fs", self.config.interval)
        self._timer = asyncio.get_running_loop().create_task(self._run_timer(), name="balance-poller")

    def stop_polling(self) -> None:
        """
        Stop periodic polling. Does nothing if polling is not active.

        Cycles already running are not cancelled and may still update the
        cache and notify listeners.

        """
        if self._timer is None:
            return

        logger.info("Stopping balance polling")
        self._timer.cancel()
        self._timer = None

    async def _run_timer(self) -> None:
        while True:
            cycle = self._spawn(self.poll_balances())
            try:
                await asyncio.shield(cycle)
            except Exception:
                logger.exception("Error polling balances")
            await asyncio.sleep(self.config.interval)

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def poll_balances(self) -> dict[ResourceType, Any]:
        """
        Run one poll cycle across all resource fetchers.

        Skipped when no account is connected. Fetcher failures are logged and
        returned in place of the value, never raised.

        Returns
        -------
        dict[ResourceType, Any]
            Value or exception per resource type; empty when skipped

        """
        if not self.account_provider.is_connected():
            logger.debug("No wallet connected, skipping poll cycle")
            return {}

        account_id = self.account_provider.get_account_id()
        if not account_id:
            logger.debug("No account id available, skipping poll cycle")
            return {}

        resource_types = list(self._fetchers)
        results = await asyncio.gather(
            *(self._fetchers[resource_type].fetch(account_id) for resource_type in resource_types),
            return_exceptions=True,
        )

        outcome = dict(zip(resource_types, results, strict=True))
        for resource_type, result in outcome.items():
            if isinstance(result, Exception):
                logger.error("Polling %s balance for %s failed: %s", resource_type, account_id, result)
        return outcome

    # Reads and refreshes

    def _resolve_account(self, account_id: str | None) -> str | None:
        return account_id or self.account_provider.get_account_id()

    def get_fetcher(self, resource_type: ResourceType | str) -> BaseResourceFetcher:
        return self._fetchers[ResourceType.parse(resource_type)]

    async def fetch_balance(self, resource_type: ResourceType | str, account_id: str | None = None) -> Any:
        """
        Return a balance, served from the cache while it is fresh.

        Parameters
        ----------
        resource_type : ResourceType | str
            Resource type to read
        account_id : str | None
            Account override. Uses the connected account if None.

        Returns
        -------
        Any
            Cached or freshly fetched value

        Raises
        ------
        NoAccountError
            If no account is given or connected
        UnknownResourceTypeError
            If the resource type is not tracked

        """
        fetcher = self.get_fetcher(resource_type)
        account_id = self._resolve_account(account_id)
        if not account_id:
            msg = "No account ID available"
            raise NoAccountError(msg)
        return await fetcher.fetch(account_id)

    async def force_refresh(self, resource_type: ResourceType | str, account_id: str | None = None) -> Any:
        """
        Fetch a balance, ignoring any cached value.

        Parameters
        ----------
        resource_type : ResourceType | str
            Resource type to refresh
        account_id : str | None
            Account override. Uses the connected account if None.

        Returns
        -------
        Any
            Freshly fetched value

        Raises
        ------
        NoAccountError
            If no account is given or connected
        UnknownResourceTypeError
            If the resource type is not tracked
        Exception
            The data source error once retries are exhausted

        """
        fetcher = self.get_fetcher(resource_type)
        account_id = self._resolve_account(account_id)
        if not account_id:
            msg = "No account ID available"
            raise NoAccountError(msg)
        return await fetcher.refresh(account_id)

    def get_cached_balance(self, resource_type: ResourceType | str, account_id: str | None = None) -> Any | None:
        """
        Return a cached balance without fetching.

        Parameters
        ----------
        resource_type : ResourceType | str
            Resource type to read
        account_id : str | None
            Account override. Uses the connected account if None.

        Returns
        -------
        Any | None
            Cached value, or None if absent, stale, or no account is known

        """
        resource_type = ResourceType.parse(resource_type)
        account_id = self._resolve_account(account_id)
        if not account_id:
            return None
        return self.cache.get_valid(make_key(resource_type, account_id))

    def clear_cache(self, resource_type: ResourceType | str | None = None, account_id: str | None = None) -> None:
        """Drop one cached balance, or all of them when no resource type is given."""
        if resource_type is None:
            self.cache.clear()
            return
        account_id = self._resolve_account(account_id)
        if account_id:
            self.cache.clear(make_key(ResourceType.parse(resource_type), account_id))

    def add_listener(self, resource_type: ResourceType | str, callback: BalanceListener) -> Subscription:
        """
        Register a callback for fresh values of one resource type.

        Returns
        -------
        Subscription
            Call it to unsubscribe

        """
        return self.listeners.add_listener(resource_type, callback)

    # Post-transaction resync

    async def refresh_after_transaction(
        self,
        transaction_id: str,
        resource_types: Iterable[ResourceType | str] = DEFAULT_RESYNC_TYPES,
    ) -> None:
        """
        Refresh balances once a transaction has had time to settle.

        Waits on the confirmer, then force-refreshes every listed resource type
        concurrently. Failures are logged, never raised.

        Parameters
        ----------
        transaction_id : str
            Transaction that changed the account's balances
        resource_types : Iterable[ResourceType | str]
            Resource types affected by the transaction

        """
        resource_types = list(resource_types)
        try:
            confirmed = await self.confirmer.wait_for_confirmation(transaction_id)
        except Exception:
            logger.exception("Error waiting for transaction %s", transaction_id)
            confirmed = False

        if not confirmed:
            logger.warning("Transaction %s not confirmed, refreshing balances anyway", transaction_id)

        account_id = self.account_provider.get_account_id()
        if not account_id:
            logger.debug("No account connected after transaction %s, skipping refresh", transaction_id)
            return

        await asyncio.gather(
            *(self._refresh_quietly(resource_type, account_id) for resource_type in resource_types),
        )
        logger.info("Balances refreshed after transaction %s", transaction_id)

    async def _refresh_quietly(self, resource_type: ResourceType | str, account_id: str) -> None:
        try:
            await self.force_refresh(resource_type, account_id)
        except Exception as e:
            logger.error("Failed to refresh %s balance: %s", resource_type, e)

    def schedule_refresh_after_transaction(
        self,
        transaction_id: str,
        resource_types: Iterable[ResourceType | str] = DEFAULT_RESYNC_TYPES,
    ) -> asyncio.Task:
        """Run :meth:`refresh_after_transaction` in the background and return its task."""
        return self._spawn(self.refresh_after_transaction(transaction_id, resource_types))

    # Shutdown

    async def close(self) -> None:
        """Stop polling and wait for background work to finish."""
        self.stop_polling()
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        await self.in_flight.wait_all()
        await self.listeners.wait_pending()

    async def __aenter__(self) -> "BalancePoller":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
