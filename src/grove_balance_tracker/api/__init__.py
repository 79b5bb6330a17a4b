"""Platform API client used as the poller's data source."""

from grove_balance_tracker.api.client import CoffeeTreeAPIClient, DataSourceError

__all__ = [
    "CoffeeTreeAPIClient",
    "DataSourceError",
]
