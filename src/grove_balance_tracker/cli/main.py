"""CLI for grove balance tracker."""

import asyncio
import json
import logging
from enum import StrEnum
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from grove_balance_tracker.api import CoffeeTreeAPIClient
from grove_balance_tracker.confirmation import FixedDelayConfirmer, MirrorNodeConfirmer
from grove_balance_tracker.core import BalancePoller, ConfigError, ResourceType, Settings
from grove_balance_tracker.core.interfaces import TransactionConfirmer
from grove_balance_tracker.core.models import DEFAULT_RESYNC_TYPES
from grove_balance_tracker.core.registry import FetcherRegistry
from grove_balance_tracker.data import load_settings
from grove_balance_tracker.wallet import WalletSession

# Install rich traceback handler
install(show_locals=False)

app = typer.Typer(
    name="grove-balance-tracker",
    help="Watch grove token, USDC, LP, revenue, and distribution balances of a Hedera account",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=debug)],
        force=True,
    )
    # Suppress verbose HTTP request logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load(config: Path | None, api_url: str | None) -> Settings:
    try:
        settings = load_settings(config)
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(code=2) from e
    if api_url:
        settings.api.base_url = api_url
    return settings


def _build_confirmer(settings: Settings, use_mirror_node: bool) -> TransactionConfirmer:
    if use_mirror_node or settings.confirmation.strategy == "mirror_node":
        return MirrorNodeConfirmer(
            base_url=settings.confirmation.mirror_node_url,
            timeout=settings.poll.confirmation_timeout,
            poll_interval=settings.confirmation.poll_interval,
        )
    return FixedDelayConfirmer(settings.poll.confirmation_timeout)


def _format_value(value: Any) -> str:
    if value is None:
        return "[red]not refreshed[/red]"
    if isinstance(value, Exception):
        return f"[red]error: {value}[/red]"
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


def _output_table(account_id: str, balances: dict[ResourceType, Any]) -> None:
    """Output balances as rich table."""
    if not balances:
        console.print("\n[yellow]No balances fetched[/yellow]")
        return

    table = Table(title=f"Balances for {account_id}", show_header=True, header_style="bold magenta")
    table.add_column("Balance", style="cyan")
    table.add_column("Value", style="white")

    for resource_type, value in balances.items():
        table.add_row(resource_type.value, _format_value(value))

    console.print("\n")
    console.print(table)
    console.print("\n")


def _output_json(account_id: str, balances: dict[ResourceType, Any]) -> None:
    """Output balances as JSON."""
    data = {
        "account_id": account_id,
        "balances": {
            resource_type.value: ({"error": str(value)} if isinstance(value, Exception) else value)
            for resource_type, value in balances.items()
        },
    }
    console.print(json.dumps(data, indent=2, default=str))


async def _fetch_balances(poller: BalancePoller, account_id: str, types: list[ResourceType]) -> dict[ResourceType, Any]:
    results = await asyncio.gather(
        *(poller.force_refresh(resource_type, account_id) for resource_type in types),
        return_exceptions=True,
    )
    return dict(zip(types, results, strict=True))


@app.command()
def balance(
    account_id: str = typer.Argument(..., help="Hedera account id, e.g. 0.0.1234"),
    types: list[ResourceType] | None = typer.Option(None, "--type", "-t", help="Balance type (repeatable)"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Settings YAML file"),
    api_url: str | None = typer.Option(None, "--api-url", help="Platform API base URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Fetch fresh balances for an account once.

    Examples:

        # All balances
        grove-balance-tracker balance 0.0.1234

        # Only USDC and LP tokens, as JSON
        grove-balance-tracker balance 0.0.1234 -t usdc -t lp --format json
    """
    _setup_logging(debug)
    settings = _load(config, api_url)
    selected = types or list(ResourceType)

    async def run() -> dict[ResourceType, Any]:
        async with CoffeeTreeAPIClient(settings.api.base_url, settings.api.timeout) as client:
            async with BalancePoller(client, WalletSession(account_id), settings.poll) as poller:
                return await _fetch_balances(poller, account_id, selected)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Fetching balances for {account_id}...", total=None)
        balances = asyncio.run(run())

    if format == OutputFormat.JSON:
        _output_json(account_id, balances)
    else:
        _output_table(account_id, balances)

    if all(isinstance(value, Exception) for value in balances.values()):
        raise typer.Exit(code=1)


@app.command()
def watch(
    account_id: str = typer.Argument(..., help="Hedera account id, e.g. 0.0.1234"),
    duration: float | None = typer.Option(None, "--duration", help="Stop after this many seconds"),
    interval: float | None = typer.Option(None, "--interval", "-i", help="Seconds between poll cycles"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Settings YAML file"),
    api_url: str | None = typer.Option(None, "--api-url", help="Platform API base URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Poll balances and print every update until interrupted."""
    _setup_logging(debug)
    settings = _load(config, api_url)
    poll_config = settings.poll
    if interval is not None:
        poll_config = poll_config.model_copy(
            update={"interval": interval, "cache_ttl": min(interval, poll_config.cache_ttl)},
        )

    def on_update(resource_type: ResourceType) -> Any:
        def _print(value: Any) -> None:
            console.print(f"[cyan]{resource_type.value}[/cyan] {_format_value(value)}")

        return _print

    async def run() -> None:
        async with CoffeeTreeAPIClient(settings.api.base_url, settings.api.timeout) as client:
            async with BalancePoller(client, WalletSession(account_id), poll_config) as poller:
                for resource_type in ResourceType:
                    poller.add_listener(resource_type, on_update(resource_type))
                poller.start_polling()
                if duration is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(duration)

    console.print(f"\n[bold cyan]Watching balances for:[/bold cyan] {account_id} (every {poll_config.interval:.0f}s)")
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped[/dim]")


@app.command()
def resync(
    transaction_id: str = typer.Argument(..., help="Transaction id that changed the balances"),
    account_id: str = typer.Argument(..., help="Hedera account id, e.g. 0.0.1234"),
    types: list[ResourceType] | None = typer.Option(None, "--type", "-t", help="Balance type (repeatable)"),
    mirror_node: bool = typer.Option(False, "--mirror-node", help="Wait for mirror node confirmation"),
    config: Path | None = typer.Option(None, "--config", "-c", help="Settings YAML file"),
    api_url: str | None = typer.Option(None, "--api-url", help="Platform API base URL"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Wait for a transaction to settle, then print the refreshed balances."""
    _setup_logging(debug)
    settings = _load(config, api_url)
    selected = types or list(DEFAULT_RESYNC_TYPES)
    confirmer = _build_confirmer(settings, mirror_node)

    async def run() -> dict[ResourceType, Any]:
        try:
            async with CoffeeTreeAPIClient(settings.api.base_url, settings.api.timeout) as client:
                async with BalancePoller(client, WalletSession(account_id), settings.poll, confirmer=confirmer) as poller:
                    await poller.refresh_after_transaction(transaction_id, selected)
                    return {
                        resource_type: poller.get_cached_balance(resource_type, account_id)
                        for resource_type in selected
                    }
        finally:
            if isinstance(confirmer, MirrorNodeConfirmer):
                await confirmer.aclose()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Waiting for {transaction_id} to settle...", total=None)
        balances = asyncio.run(run())

    _output_table(account_id, balances)

    # Refresh failures are logged and leave no fresh value behind
    if all(value is None for value in balances.values()):
        raise typer.Exit(code=1)


@app.command()
def list_types() -> None:
    """List all tracked balance types."""
    table = Table(title="Tracked Balances", show_header=True, header_style="bold magenta")
    table.add_column("Type", style="cyan")
    table.add_column("Fetcher", style="green")
    table.add_column("Description", style="white")

    for resource_type, fetcher_class in FetcherRegistry.get_all_fetchers().items():
        description = (fetcher_class.__doc__ or "").strip().split("\n")[0]
        table.add_row(resource_type.value, fetcher_class.__name__, description)

    console.print(table)


if __name__ == "__main__":
    app()
