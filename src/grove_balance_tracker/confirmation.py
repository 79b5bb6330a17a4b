"""Transaction confirmers used before refreshing balances after a mutation."""

import asyncio
import logging
import re
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# 0.0.1234@1700000000.123456789 -> 0.0.1234-1700000000-123456789
_SDK_TRANSACTION_ID = re.compile(r"^(\d+\.\d+\.\d+)@(\d+)\.(\d+)$")


def to_mirror_node_id(transaction_id: str) -> str:
    """
    Convert a Hedera SDK transaction id to the mirror node REST format.

    Parameters
    ----------
    transaction_id : str
        Transaction id, in SDK (``account@seconds.nanos``) or mirror node form

    Returns
    -------
    str
        Transaction id usable in ``/api/v1/transactions/{id}``

    """
    match = _SDK_TRANSACTION_ID.match(transaction_id.strip())
    if match:
        account, seconds, nanos = match.groups()
        return f"{account}-{seconds}-{nanos}"
    return transaction_id.strip()


class FixedDelayConfirmer:
    """
    Assumes a transaction settles within a fixed delay.

    Parameters
    ----------
    delay : float
        Seconds to wait before reporting the transaction as settled

    """

    def __init__(self, delay: float = 5.0) -> None:
        self.delay = delay

    async def wait_for_confirmation(self, transaction_id: str) -> bool:
        logger.debug("Waiting %.1fs for transaction %s to settle", self.delay, transaction_id)
        await asyncio.sleep(self.delay)
        return True


class MirrorNodeConfirmer:
    """
    Polls the Hedera mirror node until a transaction reaches consensus.

    Parameters
    ----------
    base_url : str
        Mirror node base URL
    timeout : float
        Seconds to keep polling before giving up
    poll_interval : float
        Seconds between queries
    client : httpx.AsyncClient | None
        HTTP client to use. A client owned by the confirmer is created if None.

    """

    BASE_URL = "https://testnet.mirrornode.hedera.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=10.0)

    async def wait_for_confirmation(self, transaction_id: str) -> bool:
        """
        Wait until the transaction is found with a final result.

        Parameters
        ----------
        transaction_id : str
            Hedera transaction id

        Returns
        -------
        bool
            True if the transaction succeeded, False if it failed or was not
            seen before the timeout

        """
        url = f"{self.base_url}/api/v1/transactions/{to_mirror_node_id(transaction_id)}"
        deadline = time.monotonic() + self.timeout

        while True:
            result = await self._query_result(url)
            if result is not None:
                if result == "SUCCESS":
                    logger.debug("Transaction %s confirmed", transaction_id)
                    return True
                logger.warning("Transaction %s finished with result %s", transaction_id, result)
                return False

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("Transaction %s not confirmed within %.1fs", transaction_id, self.timeout)
                return False
            await asyncio.sleep(min(self.poll_interval, remaining))

    async def _query_result(self, url: str) -> str | None:
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.debug("Mirror node query failed: %s", e)
            return None

        if response.status_code != 200:
            # 404 until the mirror node has ingested the transaction
            return None

        data: dict[str, Any] = response.json()
        transactions = data.get("transactions") or []
        if not transactions:
            return None
        return transactions[0].get("result")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
