"""Data models for resource types, poll configuration, and settings."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from grove_balance_tracker.core.errors import UnknownResourceTypeError


class ResourceType(StrEnum):
    """Balance categories tracked for a connected account."""

    TOKEN = "token"
    USDC = "usdc"
    LP = "lp"
    FARMER = "farmer"
    PENDING = "pending"

    @classmethod
    def parse(cls, value: "ResourceType | str") -> "ResourceType":
        """
        Coerce a string to a resource type.

        Parameters
        ----------
        value : ResourceType | str
            Resource type or its string value

        Returns
        -------
        ResourceType
            Matching resource type

        Raises
        ------
        UnknownResourceTypeError
            If the value does not name a resource type

        """
        try:
            return cls(value)
        except ValueError:
            raise UnknownResourceTypeError(value) from None


# Resources refreshed after a transaction when the caller does not say otherwise
DEFAULT_RESYNC_TYPES: tuple[ResourceType, ...] = (ResourceType.TOKEN, ResourceType.USDC)

# Grove id -> token balance
GroveTokenBalances = dict[str, Any]


class PollConfig(BaseModel):
    """
    Polling, caching, and retry settings, fixed for the lifetime of a poller.

    Attributes
    ----------
    interval : float
        Seconds between poll cycles
    cache_ttl : float
        Seconds a fetched value stays fresh
    max_retries : int
        Total attempts per fetch before the error is surfaced
    base_retry_delay : float
        Backoff delay in seconds after the first failed attempt
    confirmation_timeout : float
        Seconds to wait for a transaction to settle before refreshing

    """

    model_config = ConfigDict(frozen=True)

    interval: float = Field(default=30.0, gt=0)
    cache_ttl: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=1)
    base_retry_delay: float = Field(default=1.0, ge=0)
    confirmation_timeout: float = Field(default=5.0, ge=0)


class ApiSettings(BaseModel):
    """
    Platform REST API connection settings.

    Attributes
    ----------
    base_url : str
        API base URL
    timeout : float
        Request timeout in seconds

    """

    base_url: str = "http://localhost:3005"
    timeout: float = Field(default=60.0, gt=0)


class ConfirmationSettings(BaseModel):
    """
    Transaction confirmation strategy.

    Attributes
    ----------
    strategy : str
        'fixed' waits a fixed delay, 'mirror_node' polls the Hedera mirror node
    mirror_node_url : str
        Mirror node base URL
    poll_interval : float
        Seconds between mirror node queries

    """

    strategy: str = "fixed"
    mirror_node_url: str = "https://testnet.mirrornode.hedera.com"
    poll_interval: float = Field(default=1.0, gt=0)

    @model_validator(mode="after")
    def _check_strategy(self) -> "ConfirmationSettings":
        if self.strategy not in ("fixed", "mirror_node"):
            msg = f"Unknown confirmation strategy: {self.strategy}"
            raise ValueError(msg)
        return self


class Settings(BaseModel):
    """Top-level settings assembled from YAML files and the environment."""

    poll: PollConfig = Field(default_factory=PollConfig)
    api: ApiSettings = Field(default_factory=ApiSettings)
    confirmation: ConfirmationSettings = Field(default_factory=ConfirmationSettings)
