"""Status report: live usage, yesterday, last 30 days and tariff in one message."""

import logging
from datetime import datetime, timezone

from ..collectors.octopus import OctopusClient
from ..config import ProviderCredentials
from ..consumption import get_usage_and_cost, last_30_days, yesterday
from ..models import StatusReport
from ..tariffs import resolve_tariff
from ..telemetry import get_live_usage_watts
from ..units import format_timestamp, format_usage, format_watts

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "❌ Error fetching data. Please try again later."


async def collect_status(
    client: OctopusClient, credentials: ProviderCredentials, now: datetime | None = None
) -> StatusReport:
    """Gather every figure for the report, one call after another."""
    if now is None:
        now = datetime.now(timezone.utc)
    today = now.astimezone(timezone.utc).date() if now.tzinfo else now.date()

    live_usage = await get_live_usage_watts(client, credentials)
    yesterday_window = await get_usage_and_cost(client, credentials, *yesterday(today))
    monthly_window = await get_usage_and_cost(client, credentials, *last_30_days(today))
    tariff = await resolve_tariff(client, credentials)

    return StatusReport(
        live_usage=live_usage,
        yesterday=yesterday_window,
        last_30_days=monthly_window,
        tariff=tariff,
        generated_at=now,
    )


def format_status_report(report: StatusReport) -> str:
    """Render a StatusReport as a Markdown message."""
    return (
        "🔌 *Octopus Energy Status*\n\n"
        f"*Current Usage:* {format_watts(report.live_usage)}W\n\n"
        "*Yesterday's Usage:*\n"
        f"{format_usage(report.yesterday.usage, report.yesterday.cost)}\n\n"
        "*Last 30 Days:*\n"
        f"{format_usage(report.last_30_days.usage, report.last_30_days.cost)}\n\n"
        "*Tariff Information:*\n"
        f"Name: {report.tariff.name}\n"
        f"Unit Rate: £{report.tariff.unit_rate}/kWh\n"
        f"Standing Charge: £{report.tariff.standing_charge}/day\n\n"
        f"Last Updated: {format_timestamp(report.generated_at)}"
    )


async def build_status_report(
    client: OctopusClient, credentials: ProviderCredentials, now: datetime | None = None
) -> str:
    """Build the status message text. Never raises; failures give ERROR_MESSAGE."""
    try:
        report = await collect_status(client, credentials, now)
        return format_status_report(report)
    except Exception:
        logger.exception("Error generating status message")
        return ERROR_MESSAGE
