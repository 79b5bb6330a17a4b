"""Grove token balance fetcher."""

import asyncio
import logging
from typing import Any

from grove_balance_tracker.core.models import GroveTokenBalances, ResourceType
from grove_balance_tracker.core.registry import FetcherRegistry
from grove_balance_tracker.fetchers.base import BaseResourceFetcher
from grove_balance_tracker.sync.retry import retry_fetch

logger = logging.getLogger(__name__)


def extract_grove_ids(response: Any) -> list[str]:
    """
    Pull grove identifiers out of a grove listing.

    Parameters
    ----------
    response : Any
        Either a list of grove records or a mapping with a ``groves`` list.
        Records may be mappings with an ``id`` key or bare identifiers.

    Returns
    -------
    list[str]
        Grove ids in listing order

    """
    if isinstance(response, dict):
        groves = response.get("groves") or []
    else:
        groves = response or []

    grove_ids = []
    for grove in groves:
        grove_id = grove.get("id") if isinstance(grove, dict) else grove
        if grove_id is None:
            logger.warning("Skipping grove record without id: %r", grove)
            continue
        grove_ids.append(str(grove_id))
    return grove_ids


@FetcherRegistry.register
class TokenBalanceFetcher(BaseResourceFetcher):
    """
    Fetches the token balance of every grove for an account.

    The grove listing must succeed; a grove whose balance cannot be fetched
    after retries contributes a zero balance, so the result always covers
    every listed grove.

    """

    resource_type = ResourceType.TOKEN

    async def fetch_remote(self, account_id: str) -> GroveTokenBalances:
        response = await self.data_source.get_groves()
        grove_ids = extract_grove_ids(response)

        balances = await asyncio.gather(
            *(self._grove_balance(grove_id, account_id) for grove_id in grove_ids),
        )
        return dict(zip(grove_ids, balances, strict=True))

    async def _grove_balance(self, grove_id: str, account_id: str) -> Any:
        try:
            return await retry_fetch(
                lambda: self.data_source.get_token_balance(grove_id, account_id),
                self.retry_config,
            )
        except Exception as e:
            logger.warning("Error fetching balance for grove %s, using 0: %s", grove_id, e)
            return 0
