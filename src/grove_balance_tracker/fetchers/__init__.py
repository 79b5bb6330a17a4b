"""Resource fetchers for the tracked balance types."""

# Import all fetchers to trigger auto-registration
from grove_balance_tracker.fetchers.balances import (
    FarmerBalanceFetcher,
    LPTokenBalanceFetcher,
    PendingDistributionFetcher,
    USDCBalanceFetcher,
)
from grove_balance_tracker.fetchers.base import BaseResourceFetcher
from grove_balance_tracker.fetchers.token import TokenBalanceFetcher, extract_grove_ids

__all__ = [
    "BaseResourceFetcher",
    "FarmerBalanceFetcher",
    "LPTokenBalanceFetcher",
    "PendingDistributionFetcher",
    "TokenBalanceFetcher",
    "USDCBalanceFetcher",
    "extract_grove_ids",
]
