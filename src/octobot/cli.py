"""Command-line interface for the Octopus Energy status bot."""

import asyncio
import logging
from datetime import date, datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .bot.dispatcher import CommandDispatcher
from .bot.telegram import TelegramTransport, run_polling
from .collectors.octopus import OctopusClient
from .config import Settings, load_settings
from .consumption import get_usage_and_cost
from .errors import ConfigurationMissing, OctobotError
from .reports.status import build_status_report
from .tariffs import resolve_tariff
from .telemetry import get_live_usage_watts
from .units import format_usage, format_watts

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Send log records through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_settings(require_bot_token: bool = False) -> Settings:
    """Load settings or exit with a readable message."""
    try:
        return load_settings(require_bot_token=require_bot_token)
    except ConfigurationMissing as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise SystemExit(1)


def octopus_client(settings: Settings) -> OctopusClient:
    return OctopusClient(
        settings.credentials.api_key,
        base_url=settings.base_url,
        timeout=settings.timeout,
    )


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"expected YYYY-MM-DD, got {value!r}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """Octopus Energy status bot - live usage, consumption and tariff reports."""
    setup_logging(verbose)


@cli.command("run")
def run_bot():
    """Start the Telegram bot (long polling)."""
    settings = get_settings(require_bot_token=True)

    async def main():
        async with octopus_client(settings) as client, TelegramTransport(
            settings.bot_token,
            base_url=settings.telegram_base_url,
            timeout=settings.timeout,
        ) as transport:
            dispatcher = CommandDispatcher(
                transport, lambda: build_status_report(client, settings.credentials)
            )
            await run_polling(transport, dispatcher)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        console.print("[yellow]Bot stopped[/yellow]")


@cli.command()
def status():
    """Print the status report once."""
    settings = get_settings()

    async def main():
        async with octopus_client(settings) as client:
            return await build_status_report(client, settings.credentials)

    # Markdown markers are for Telegram; print the text as-is
    console.print(asyncio.run(main()), markup=False)


@cli.command()
def tariff():
    """Show the current tariff rates."""
    settings = get_settings()

    async def main():
        async with octopus_client(settings) as client:
            return await resolve_tariff(client, settings.credentials)

    try:
        rate = asyncio.run(main())
    except OctobotError as e:
        console.print(f"[red]Failed to resolve tariff: {e}[/red]")
        raise SystemExit(1)

    table = Table(title="Current Tariff")
    table.add_column("Name", style="cyan")
    table.add_column("Unit Rate", justify="right")
    table.add_column("Standing Charge", justify="right")
    table.add_row(rate.name, f"£{rate.unit_rate}/kWh", f"£{rate.standing_charge}/day")
    console.print(table)


@cli.command()
@click.option("--from-date", "from_date", required=True, help="Start date (YYYY-MM-DD)")
@click.option("--to-date", "to_date", help="End date (YYYY-MM-DD), defaults to start date")
def usage(from_date, to_date):
    """Show consumption and cost for a date range."""
    start = parse_date(from_date)
    end = parse_date(to_date) if to_date else start
    if end < start:
        raise click.BadParameter("--to-date must not be before --from-date")

    settings = get_settings()

    async def main():
        async with octopus_client(settings) as client:
            return await get_usage_and_cost(client, settings.credentials, start, end)

    try:
        window = asyncio.run(main())
    except OctobotError as e:
        console.print(f"[red]Failed to fetch usage: {e}[/red]")
        raise SystemExit(1)

    console.print(f"[cyan]{start} → {end}[/cyan]")
    console.print(format_usage(window.usage, window.cost), markup=False)


@cli.command()
def live():
    """Show the current power draw."""
    settings = get_settings()

    async def main():
        async with octopus_client(settings) as client:
            return await get_live_usage_watts(client, settings.credentials)

    console.print(f"Current Usage: {format_watts(asyncio.run(main()))}W")


if __name__ == "__main__":
    cli()
