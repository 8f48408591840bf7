"""Live power draw from the smart meter.

Best effort: the live figure is cosmetic, so any failure is logged and
reported as 0 W instead of failing the whole report.
"""

import logging
from decimal import Decimal

from .collectors.octopus import OctopusClient
from .config import ProviderCredentials
from .errors import NotFound

logger = logging.getLogger(__name__)

NO_DEMAND = Decimal(0)


async def fetch_live_demand(client: OctopusClient, credentials: ProviderCredentials) -> Decimal:
    """Token → device → telemetry. Raises on any failure."""
    token = await client.obtain_token()
    device = await client.get_smart_device(token, credentials.account_number)
    readings = await client.get_telemetry(token, device.device_id)
    if not readings:
        raise NotFound("No telemetry data available")

    reading = readings[0]
    if reading.demand is None:
        logger.warning("⚠️ No demand data available, returning 0")
        return NO_DEMAND

    logger.info("✅ Live usage data received: %sW", reading.demand)
    return reading.demand


async def get_live_usage_watts(client: OctopusClient, credentials: ProviderCredentials) -> Decimal:
    """Current demand in watts, or 0 if it cannot be fetched."""
    logger.info("📊 Fetching live usage data...")
    try:
        return await fetch_live_demand(client, credentials)
    except Exception as e:
        logger.warning("❌ Error fetching live usage: %s", e)
        return NO_DEMAND
