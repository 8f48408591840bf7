"""Consumption totals and cost over a date range."""

import logging
from datetime import date, timedelta
from decimal import Decimal

from .collectors.octopus import OctopusClient
from .config import ProviderCredentials
from .models import ConsumptionWindow
from .tariffs import resolve_tariff
from .units import MONEY_PLACES, USAGE_PLACES, round_places, sum_consumption

logger = logging.getLogger(__name__)

HALF_HOURS_PER_DAY = 48
MAX_PAGE_SIZE = 25000


def period_bounds(date_from: date, date_to: date) -> tuple[str, str]:
    """ISO 8601 UTC bounds covering whole days from date_from to date_to."""
    return f"{date_from.isoformat()}T00:00:00Z", f"{date_to.isoformat()}T23:59:59Z"


def yesterday(today: date) -> tuple[date, date]:
    day = today - timedelta(days=1)
    return day, day


def last_30_days(today: date) -> tuple[date, date]:
    """Rolling window ending today."""
    return today - timedelta(days=30), today


def page_size_for(date_from: date, date_to: date) -> int:
    """One page per request: 48 half-hourly intervals per day, capped by the API."""
    days = (date_to - date_from).days + 1
    return max(1, min(days * HALF_HOURS_PER_DAY, MAX_PAGE_SIZE))


def window_cost(usage: Decimal, unit_rate: Decimal) -> Decimal:
    """Cost in pounds of usage (kWh) at a unit rate (£/kWh).

    Both inputs are taken at display precision so the figures shown multiply out.
    """
    return round_places(round_places(usage, USAGE_PLACES) * unit_rate, MONEY_PLACES)


async def get_usage_and_cost(
    client: OctopusClient,
    credentials: ProviderCredentials,
    date_from: date,
    date_to: date,
) -> ConsumptionWindow:
    """Total usage and cost for the days date_from..date_to inclusive.

    Errors from the consumption fetch or tariff resolution propagate.
    """
    period_from, period_to = period_bounds(date_from, date_to)
    readings = await client.get_consumption(
        credentials.mpan,
        credentials.serial_number,
        period_from,
        period_to,
        page_size=page_size_for(date_from, date_to),
    )
    tariff = await resolve_tariff(client, credentials)

    usage = sum_consumption(readings)
    window = ConsumptionWindow(usage=usage, cost=window_cost(usage, tariff.unit_rate))
    logger.info("Usage %s → %s: %s kWh, £%s", date_from, date_to, usage, window.cost)
    return window
