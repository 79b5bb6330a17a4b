"""Core functionality including models, listeners, registry, and the balance poller."""

from grove_balance_tracker.core.errors import (
    BalanceTrackerError,
    ConfigError,
    NoAccountError,
    UnknownResourceTypeError,
)
from grove_balance_tracker.core.interfaces import AccountProvider, BalanceDataSource, TransactionConfirmer
from grove_balance_tracker.core.listeners import ListenerRegistry, Subscription
from grove_balance_tracker.core.models import PollConfig, ResourceType, Settings
from grove_balance_tracker.core.poller import BalancePoller
from grove_balance_tracker.core.registry import FetcherRegistry

__all__ = [
    "AccountProvider",
    "BalanceDataSource",
    "BalancePoller",
    "BalanceTrackerError",
    "ConfigError",
    "FetcherRegistry",
    "ListenerRegistry",
    "NoAccountError",
    "PollConfig",
    "ResourceType",
    "Settings",
    "Subscription",
    "TransactionConfirmer",
    "UnknownResourceTypeError",
]
