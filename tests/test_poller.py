"""Tests for the balance poller: scheduling, force refresh, and post-transaction resync."""

import asyncio
import logging

import pytest
from conftest import ACCOUNT_ID, FakeDataSource, InstantConfirmer

from grove_balance_tracker.confirmation import FixedDelayConfirmer
from grove_balance_tracker.core.errors import NoAccountError, UnknownResourceTypeError
from grove_balance_tracker.core.models import PollConfig, ResourceType
from grove_balance_tracker.core.poller import BalancePoller
from grove_balance_tracker.wallet import WalletSession


def _live_timers() -> list[asyncio.Task]:
    return [task for task in asyncio.all_tasks() if task.get_name() == "balance-poller" and not task.done()]


# Poll cycles


@pytest.mark.asyncio
async def test_poll_cycle_fetches_every_resource(poller, data_source):
    outcome = await poller.poll_balances()

    assert set(outcome) == set(ResourceType)
    assert outcome[ResourceType.TOKEN] == {"grove1": 10, "grove2": 20, "grove3": 30}
    assert outcome[ResourceType.USDC] == {"balance": 250.5}
    for name in (
        "get_groves",
        "get_usdc_balance",
        "get_lp_token_balances",
        "get_farmer_balance",
        "get_pending_distributions",
    ):
        assert data_source.calls[name] == 1


@pytest.mark.asyncio
async def test_poll_cycle_skipped_without_account(data_source, poll_config, confirmer):
    poller = BalancePoller(data_source, WalletSession(), poll_config, confirmer=confirmer)

    outcome = await poller.poll_balances()

    assert outcome == {}
    assert sum(data_source.calls.values()) == 0
    assert len(poller.cache) == 0


@pytest.mark.asyncio
async def test_poll_cycle_isolates_fetcher_failures(poller, data_source, caplog):
    """A failing resource is logged and does not fail the cycle."""
    data_source.fail_always["get_usdc_balance"] = ConnectionError("usdc down")

    with caplog.at_level(logging.ERROR):
        outcome = await poller.poll_balances()

    assert isinstance(outcome[ResourceType.USDC], ConnectionError)
    assert outcome[ResourceType.FARMER] == {"availableBalance": 75}
    assert poller.get_cached_balance("farmer") == {"availableBalance": 75}
    assert "Polling usdc balance" in caplog.text


@pytest.mark.asyncio
async def test_exhausted_fetch_logged_once_at_error(poller, data_source, caplog):
    data_source.fail_always["get_usdc_balance"] = ConnectionError("usdc down")

    with caplog.at_level(logging.DEBUG):
        await poller.poll_balances()

    errors = [record for record in caplog.records if record.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "Polling usdc balance" in errors[0].getMessage()
    assert "Failed to fetch usdc balance" in caplog.text


@pytest.mark.asyncio
async def test_poll_cycle_uses_cache_within_ttl(poller, data_source):
    await poller.poll_balances()
    await poller.poll_balances()

    assert data_source.calls["get_usdc_balance"] == 1


@pytest.mark.asyncio
async def test_stale_value_served_after_background_failure(poller, data_source, clock):
    """The raw cache keeps the last good value; get_cached_balance honours the TTL."""
    await poller.poll_balances()
    clock.advance(poller.config.cache_ttl + 1)
    data_source.fail_always["get_usdc_balance"] = ConnectionError("down")

    await poller.poll_balances()

    assert poller.get_cached_balance("usdc") is None
    assert poller.cache.get(f"usdc_{ACCOUNT_ID}") == {"balance": 250.5}


# Scheduler


@pytest.mark.asyncio
async def test_start_polling_runs_immediate_cycle(poller, data_source):
    poller.start_polling()
    await asyncio.sleep(0.01)

    assert poller.is_polling
    assert data_source.calls["get_usdc_balance"] == 1


@pytest.mark.asyncio
async def test_start_polling_is_idempotent(poller):
    poller.start_polling()
    timer = poller._timer
    poller.start_polling()

    assert poller._timer is timer
    await asyncio.sleep(0)
    assert len(_live_timers()) == 1


@pytest.mark.asyncio
async def test_stop_then_start_leaves_one_timer(poller):
    poller.start_polling()
    first = poller._timer
    poller.stop_polling()
    poller.start_polling()
    await asyncio.sleep(0)

    assert first.cancelled()
    assert poller._timer is not first
    assert _live_timers() == [poller._timer]


@pytest.mark.asyncio
async def test_stop_polling_when_idle_is_noop(poller):
    poller.stop_polling()

    assert not poller.is_polling


@pytest.mark.asyncio
async def test_polling_repeats_each_interval(poller, data_source, clock):
    received = []
    poller.add_listener("usdc", received.append)

    poller.start_polling()
    await asyncio.sleep(0.01)
    # Make the cached values stale so the next tick fetches again
    clock.advance(poller.config.cache_ttl)
    await asyncio.sleep(poller.config.interval + 0.03)
    poller.stop_polling()

    assert data_source.calls["get_usdc_balance"] >= 2
    assert len(received) >= 2


@pytest.mark.asyncio
async def test_stop_polling_does_not_cancel_in_flight_fetch(poller, data_source):
    """A fetch already running when polling stops still lands in the cache."""
    data_source.delay = 0.03
    received = []
    poller.add_listener("usdc", received.append)

    poller.start_polling()
    await asyncio.sleep(0.01)
    poller.stop_polling()
    await asyncio.sleep(0.05)

    assert received == [{"balance": 250.5}]
    assert poller.get_cached_balance("usdc") == {"balance": 250.5}


@pytest.mark.asyncio
async def test_close_stops_polling(data_source, wallet, poll_config, confirmer):
    async with BalancePoller(data_source, wallet, poll_config, confirmer=confirmer) as poller:
        poller.start_polling()
        await asyncio.sleep(0)
    await asyncio.sleep(0)

    assert not poller.is_polling
    assert _live_timers() == []


# Force refresh and cached reads


@pytest.mark.asyncio
async def test_force_refresh_bypasses_valid_cache(poller, data_source):
    await poller.fetch_balance("usdc")
    data_source.values["get_usdc_balance"] = {"balance": 10.0}

    value = await poller.force_refresh("usdc")

    assert value == {"balance": 10.0}
    assert data_source.calls["get_usdc_balance"] == 2
    assert poller.get_cached_balance("usdc") == {"balance": 10.0}


@pytest.mark.asyncio
async def test_force_refresh_failure_never_returns_stale_value(poller, data_source):
    await poller.fetch_balance("lp")
    data_source.fail_always["get_lp_token_balances"] = ConnectionError("down")

    with pytest.raises(ConnectionError):
        await poller.force_refresh("lp")

    assert poller.get_cached_balance("lp") is None


@pytest.mark.asyncio
async def test_force_refresh_with_account_override(poller, data_source):
    await poller.force_refresh("farmer", "0.0.777")

    assert poller.get_cached_balance("farmer", "0.0.777") == {"availableBalance": 75}
    assert poller.get_cached_balance("farmer") is None


@pytest.mark.asyncio
async def test_force_refresh_without_account(data_source, poll_config, confirmer):
    poller = BalancePoller(data_source, WalletSession(), poll_config, confirmer=confirmer)

    with pytest.raises(NoAccountError):
        await poller.force_refresh("usdc")


@pytest.mark.asyncio
async def test_force_refresh_unknown_type(poller):
    with pytest.raises(UnknownResourceTypeError):
        await poller.force_refresh("btc")


def test_cached_balance_before_any_poll(data_source, wallet, poll_config):
    poller = BalancePoller(data_source, wallet, poll_config)

    assert poller.get_cached_balance("usdc", ACCOUNT_ID) is None
    assert poller.get_cached_balance("usdc") is None


def test_cached_balance_without_account(data_source, poll_config):
    poller = BalancePoller(data_source, WalletSession(), poll_config)

    assert poller.get_cached_balance("usdc") is None


@pytest.mark.asyncio
async def test_clear_cache(poller):
    await poller.poll_balances()

    poller.clear_cache("usdc")
    assert poller.get_cached_balance("usdc") is None
    assert poller.get_cached_balance("lp") is not None

    poller.clear_cache()
    assert len(poller.cache) == 0


@pytest.mark.asyncio
async def test_unsubscribed_listener_stops_receiving(poller):
    received = []
    unsubscribe = poller.add_listener("usdc", received.append)

    await poller.force_refresh("usdc")
    unsubscribe()
    await poller.force_refresh("usdc")

    assert len(received) == 1


# Post-transaction resync


@pytest.mark.asyncio
async def test_refresh_after_transaction_refreshes_listed_types(poller, data_source, confirmer):
    await poller.poll_balances()

    await poller.refresh_after_transaction("tx123", ["token", "usdc"])

    assert confirmer.seen == ["tx123"]
    assert data_source.calls["get_groves"] == 2
    assert data_source.calls["get_usdc_balance"] == 2
    assert data_source.calls["get_lp_token_balances"] == 1


@pytest.mark.asyncio
async def test_refresh_after_transaction_tolerates_failures(poller, data_source, caplog):
    """Both refreshes run even when one of them rejects."""
    data_source.fail_always["get_groves"] = ConnectionError("groves down")

    with caplog.at_level(logging.ERROR):
        await poller.refresh_after_transaction("tx123", ["token", "usdc"])

    assert data_source.calls["get_groves"] == poller.config.max_retries
    assert data_source.calls["get_usdc_balance"] == 1
    assert poller.get_cached_balance("usdc") == {"balance": 250.5}
    assert "Failed to refresh token balance" in caplog.text


@pytest.mark.asyncio
async def test_refresh_after_transaction_defaults(poller, data_source):
    await poller.refresh_after_transaction("tx456")

    assert data_source.calls["get_groves"] == 1
    assert data_source.calls["get_usdc_balance"] == 1
    assert data_source.calls["get_farmer_balance"] == 0


@pytest.mark.asyncio
async def test_refresh_after_transaction_unknown_type_logged(poller, data_source):
    await poller.refresh_after_transaction("tx789", ["usdc", "btc"])

    assert data_source.calls["get_usdc_balance"] == 1


@pytest.mark.asyncio
async def test_refresh_after_unconfirmed_transaction_still_refreshes(data_source, wallet, poll_config, caplog):
    poller = BalancePoller(data_source, wallet, poll_config, confirmer=InstantConfirmer(confirmed=False))

    with caplog.at_level(logging.WARNING):
        await poller.refresh_after_transaction("tx1", ["usdc"])

    assert data_source.calls["get_usdc_balance"] == 1
    assert "not confirmed" in caplog.text


@pytest.mark.asyncio
async def test_refresh_after_transaction_skips_without_account(data_source, poll_config, confirmer):
    poller = BalancePoller(data_source, WalletSession(), poll_config, confirmer=confirmer)

    await poller.refresh_after_transaction("tx1", ["usdc"])

    assert data_source.calls["get_usdc_balance"] == 0


@pytest.mark.asyncio
async def test_refresh_waits_for_fixed_delay(wallet):
    data_source = FakeDataSource()
    config = PollConfig(confirmation_timeout=0.05, base_retry_delay=0.0)
    poller = BalancePoller(data_source, wallet, config)
    assert isinstance(poller.confirmer, FixedDelayConfirmer)

    task = poller.schedule_refresh_after_transaction("tx1", ["usdc"])
    await asyncio.sleep(0.01)
    assert data_source.calls["get_usdc_balance"] == 0

    await task
    assert data_source.calls["get_usdc_balance"] == 1
    await poller.close()


@pytest.mark.asyncio
async def test_default_config_values(data_source, wallet):
    poller = BalancePoller(data_source, wallet)

    assert poller.config.interval == 30.0
    assert poller.config.cache_ttl == 30.0
    assert poller.retry_config.max_retries == 3
    assert poller.retry_config.base_delay == 1.0
    assert poller.confirmer.delay == 5.0
