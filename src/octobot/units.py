"""Unit conversion and number formatting.

The provider reports prices in pence and consumption in fractional kWh;
everything shown to the user is in pounds, kWh and whole watts.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from .models import ConsumptionReading

UNIT_RATE_PLACES = 4
MONEY_PLACES = 2
USAGE_PLACES = 2


def to_decimal(value) -> Decimal:
    """Convert a JSON number (or numeric string) to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_places(value: Decimal, places: int) -> Decimal:
    """Round half-up to a fixed number of decimal places."""
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def pence_to_pounds(pence, places: int) -> Decimal:
    """Convert pence to pounds at the given precision.

    >>> pence_to_pounds(27.35, 2)
    Decimal('0.27')
    """
    return round_places(to_decimal(pence) / 100, places)


def sum_consumption(readings: Iterable[ConsumptionReading]) -> Decimal:
    """Total kWh across interval readings (0 for none)."""
    return sum((to_decimal(r.consumption) for r in readings), Decimal(0))


def format_usage(usage: Decimal, cost: Decimal) -> str:
    """Two-line usage/cost label."""
    usage_text = round_places(usage, USAGE_PLACES)
    cost_text = round_places(cost, MONEY_PLACES)
    return f"Usage: {usage_text} kWh\nCost: £{cost_text}"


def format_watts(watts: Decimal) -> str:
    return str(round_places(watts, 0))


def format_timestamp(now: datetime | None = None) -> str:
    """Format a timestamp as 'YYYY-MM-DD HH:MM:SS UTC'."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime("%Y-%m-%d %H:%M:%S UTC")
