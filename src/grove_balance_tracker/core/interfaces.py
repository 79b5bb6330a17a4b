"""Interfaces of the collaborators the poller depends on."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class AccountProvider(Protocol):
    """
    Source of the currently connected account.

    Methods
    -------
    is_connected()
        Whether a wallet is connected
    get_account_id()
        Connected account id, or None

    """

    def is_connected(self) -> bool: ...

    def get_account_id(self) -> str | None: ...


class BalanceDataSource(Protocol):
    """
    Remote source of balance data, one coroutine per resource.

    Implementations raise on failure; the poller only distinguishes success
    from failure and never interprets response codes itself.

    """

    async def get_groves(self) -> Any:
        """
        List every grove on the platform, unfiltered.

        Token balances are looked up per listed grove, so investors see
        groves they hold tokens in, not only the ones they farm.

        Returns
        -------
        Any
            List of grove records with an ``id`` field, or a mapping holding
            that list under ``groves``

        """
        ...

    async def get_token_balance(self, grove_id: str, account_id: str) -> Any:
        """
        Fetch the grove token balance held by an account.

        Parameters
        ----------
        grove_id : str
            Grove identifier
        account_id : str
            Hedera account id

        Returns
        -------
        Any
            Token balance

        """
        ...

    async def get_usdc_balance(self, account_id: str) -> Any: ...

    async def get_lp_token_balances(self, account_id: str) -> Any: ...

    async def get_farmer_balance(self, account_id: str) -> Any: ...

    async def get_pending_distributions(self, account_id: str) -> Any: ...


@runtime_checkable
class TransactionConfirmer(Protocol):
    """
    Waits until a submitted transaction has most likely settled.

    Methods
    -------
    wait_for_confirmation(transaction_id)
        Return True once the transaction is confirmed, False if confirmation
        was not observed before giving up

    """

    async def wait_for_confirmation(self, transaction_id: str) -> bool: ...
