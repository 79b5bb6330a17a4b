"""Balance synchronization engine for the coffee grove tokenization platform."""

from grove_balance_tracker.api import CoffeeTreeAPIClient, DataSourceError
from grove_balance_tracker.confirmation import FixedDelayConfirmer, MirrorNodeConfirmer
from grove_balance_tracker.core import BalancePoller, PollConfig, ResourceType
from grove_balance_tracker.wallet import WalletSession

__all__ = [
    "BalancePoller",
    "CoffeeTreeAPIClient",
    "DataSourceError",
    "FixedDelayConfirmer",
    "MirrorNodeConfirmer",
    "PollConfig",
    "ResourceType",
    "WalletSession",
]
