"""Wallet session acting as the poller's account provider."""

import logging

logger = logging.getLogger(__name__)


class WalletSession:
    """
    Mutable connection state of a single wallet.

    Parameters
    ----------
    account_id : str | None
        Account to start connected with. Starts disconnected if None.

    """

    def __init__(self, account_id: str | None = None) -> None:
        self._account_id = account_id

    def connect(self, account_id: str) -> None:
        """Mark the wallet as connected to ``account_id``."""
        if not account_id:
            msg = "account_id must not be empty"
            raise ValueError(msg)
        logger.info("Wallet connected: %s", account_id)
        self._account_id = account_id

    def disconnect(self) -> None:
        """Forget the connected account."""
        if self._account_id is not None:
            logger.info("Wallet disconnected: %s", self._account_id)
        self._account_id = None

    def is_connected(self) -> bool:
        return self._account_id is not None

    def get_account_id(self) -> str | None:
        return self._account_id
