"""Coffee tree platform REST API client for balance data."""

import logging
from typing import Any

import httpx

from grove_balance_tracker.core.errors import BalanceTrackerError

logger = logging.getLogger(__name__)


class DataSourceError(BalanceTrackerError):
    """
    Exception raised for platform API errors.

    Parameters
    ----------
    message : str
        Error description
    status_code : int | None
        HTTP status code, None for transport errors and timeouts
    endpoint : str | None
        Endpoint that failed

    """

    def __init__(self, message: str, status_code: int | None = None, endpoint: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500


class CoffeeTreeAPIClient:
    """
    Async client for the balance endpoints of the platform API.

    Implements the ``BalanceDataSource`` interface.

    Parameters
    ----------
    base_url : str
        API base URL
    timeout : float
        Request timeout in seconds
    client : httpx.AsyncClient | None
        Preconfigured HTTP client (e.g. with a mock transport). Created if None.

    """

    BASE_URL = "http://localhost:3005"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def _get(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """
        Perform a GET request and decode the JSON body.

        Parameters
        ----------
        endpoint : str
            Path relative to the base URL
        params : dict[str, Any] | None
            Query parameters

        Returns
        -------
        Any
            Decoded JSON response

        Raises
        ------
        DataSourceError
            If the request fails or the API answers with an error status

        """
        url = f"{self.base_url}{endpoint}"
        try:
            response = await self.client.get(url, params=params)
        except httpx.TimeoutException as e:
            msg = f"Request timeout: {e}"
            raise DataSourceError(msg, endpoint=endpoint) from e
        except httpx.HTTPError as e:
            msg = f"HTTP request failed: {e}"
            raise DataSourceError(msg, endpoint=endpoint) from e

        if response.is_success:
            try:
                return response.json()
            except ValueError as e:
                msg = f"Invalid JSON from {endpoint}: {e}"
                raise DataSourceError(msg, status_code=response.status_code, endpoint=endpoint) from e

        raise DataSourceError(
            self._error_message(response),
            status_code=response.status_code,
            endpoint=endpoint,
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"HTTP error {response.status_code}: {response.text}"
        if isinstance(data, dict):
            message = data.get("error") or data.get("message")
            if message:
                return str(message)
        return f"HTTP error {response.status_code}"

    async def get_groves(self) -> Any:
        return await self._get("/api/groves")

    async def get_token_balance(self, grove_id: str, account_id: str) -> Any:
        return await self._get("/api/balance/token", {"groveId": grove_id, "accountId": account_id})

    async def get_usdc_balance(self, account_id: str) -> Any:
        return await self._get("/api/balance/usdc", {"accountId": account_id})

    async def get_lp_token_balances(self, account_id: str) -> Any:
        return await self._get("/api/balance/lp-tokens", {"accountId": account_id})

    async def get_farmer_balance(self, account_id: str) -> Any:
        return await self._get("/api/revenue/farmer-balance", {"farmerAddress": account_id})

    async def get_pending_distributions(self, account_id: str) -> Any:
        return await self._get("/api/revenue/pending-distributions", {"holderAddress": account_id})

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "CoffeeTreeAPIClient":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.aclose()
