"""Single-call balance fetchers."""

from typing import Any

from grove_balance_tracker.core.models import ResourceType
from grove_balance_tracker.core.registry import FetcherRegistry
from grove_balance_tracker.fetchers.base import BaseResourceFetcher


@FetcherRegistry.register
class USDCBalanceFetcher(BaseResourceFetcher):
    """Stable-coin (USDC) balance of the account."""

    resource_type = ResourceType.USDC

    async def fetch_remote(self, account_id: str) -> Any:
        return await self.data_source.get_usdc_balance(account_id)


@FetcherRegistry.register
class LPTokenBalanceFetcher(BaseResourceFetcher):
    """Liquidity-pool token balances of the account."""

    resource_type = ResourceType.LP

    async def fetch_remote(self, account_id: str) -> Any:
        return await self.data_source.get_lp_token_balances(account_id)


@FetcherRegistry.register
class FarmerBalanceFetcher(BaseResourceFetcher):
    """Withdrawable farmer revenue balance."""

    resource_type = ResourceType.FARMER

    async def fetch_remote(self, account_id: str) -> Any:
        return await self.data_source.get_farmer_balance(account_id)


@FetcherRegistry.register
class PendingDistributionFetcher(BaseResourceFetcher):
    """Revenue distributions awaiting claim by the account."""

    resource_type = ResourceType.PENDING

    async def fetch_remote(self, account_id: str) -> Any:
        return await self.data_source.get_pending_distributions(account_id)
