"""Shared test fixtures and fake collaborators."""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any

import pytest
import pytest_asyncio

from grove_balance_tracker.core.models import PollConfig
from grove_balance_tracker.core.poller import BalancePoller
from grove_balance_tracker.wallet import WalletSession

ACCOUNT_ID = "0.0.1234"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDataSource:
    """In-memory balance source that counts calls and fails on demand."""

    def __init__(self) -> None:
        self.groves: Any = [{"id": "grove1"}, {"id": "grove2"}, {"id": "grove3"}]
        self.grove_balances: dict[str, Any] = {"grove1": 10, "grove2": 20, "grove3": 30}
        self.values: dict[str, Any] = {
            "get_usdc_balance": {"balance": 250.5},
            "get_lp_token_balances": {"lpTokens": [{"assetAddress": "0.0.5555", "balance": 12}]},
            "get_farmer_balance": {"availableBalance": 75},
            "get_pending_distributions": {"distributions": [{"id": "d1", "amount": 3}]},
        }
        self.calls: Counter[str] = Counter()
        self.fail_always: dict[str, BaseException] = {}
        self.fail_times: dict[str, int] = {}
        self.failing_groves: dict[str, BaseException] = {}
        self.delay = 0.0

    async def _call(self, name: str, value: Any) -> Any:
        self.calls[name] += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if name in self.fail_always:
            raise self.fail_always[name]
        if self.fail_times.get(name, 0) > 0:
            self.fail_times[name] -= 1
            msg = f"{name} temporarily unavailable"
            raise ConnectionError(msg)
        return value

    async def get_groves(self) -> Any:
        return await self._call("get_groves", self.groves)

    async def get_token_balance(self, grove_id: str, account_id: str) -> Any:
        self.calls[f"grove:{grove_id}"] += 1
        if grove_id in self.failing_groves:
            self.calls["get_token_balance"] += 1
            raise self.failing_groves[grove_id]
        return await self._call("get_token_balance", self.grove_balances[grove_id])

    async def get_usdc_balance(self, account_id: str) -> Any:
        return await self._call("get_usdc_balance", self.values["get_usdc_balance"])

    async def get_lp_token_balances(self, account_id: str) -> Any:
        return await self._call("get_lp_token_balances", self.values["get_lp_token_balances"])

    async def get_farmer_balance(self, account_id: str) -> Any:
        return await self._call("get_farmer_balance", self.values["get_farmer_balance"])

    async def get_pending_distributions(self, account_id: str) -> Any:
        return await self._call("get_pending_distributions", self.values["get_pending_distributions"])


class InstantConfirmer:
    """Confirms every transaction immediately and records the ids."""

    def __init__(self, confirmed: bool = True) -> None:
        self.confirmed = confirmed
        self.seen: list[str] = []

    async def wait_for_confirmation(self, transaction_id: str) -> bool:
        self.seen.append(transaction_id)
        return self.confirmed


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource()


@pytest.fixture
def wallet() -> WalletSession:
    return WalletSession(ACCOUNT_ID)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def confirmer() -> InstantConfirmer:
    return InstantConfirmer()


@pytest.fixture
def poll_config() -> PollConfig:
    return PollConfig(interval=0.05, cache_ttl=30.0, max_retries=3, base_retry_delay=0.0)


@pytest_asyncio.fixture
async def poller(data_source, wallet, poll_config, confirmer, clock):
    poller = BalancePoller(data_source, wallet, poll_config, confirmer=confirmer, clock=clock)
    yield poller
    await poller.close()
