"""Tariff resolution: current agreement → tariff code → product rates."""

import logging
from datetime import datetime, timezone
from typing import Any

from .collectors.octopus import OctopusClient
from .config import ProviderCredentials
from .errors import NotFound
from .models import Account, ElectricityMeterPoint, TariffAgreement, TariffCode, TariffRate
from .units import MONEY_PLACES, UNIT_RATE_PLACES, pence_to_pounds

logger = logging.getLogger(__name__)

# Assumed for every account; not configurable
DIRECT_DEBIT_MONTHLY = "direct_debit_monthly"

TARIFF_CODE_DELIMITER = "-"

# An open-ended agreement (valid_to = None) sorts after every dated one
_OPEN_ENDED = datetime.max.replace(tzinfo=timezone.utc)


def find_meter_point(account: Account, mpan: str) -> ElectricityMeterPoint:
    """Find the meter point for an MPAN. The first property that has it wins."""
    for prop in account.properties:
        for point in prop.meter_points:
            if point.mpan == mpan:
                return point
    raise NotFound(f"MPAN {mpan} not found in any property")


def _valid_to_key(agreement: TariffAgreement) -> datetime:
    valid_to = agreement.valid_to
    if valid_to is None:
        return _OPEN_ENDED
    if valid_to.tzinfo is None:
        return valid_to.replace(tzinfo=timezone.utc)
    return valid_to


def select_current_agreement(agreements: list[TariffAgreement]) -> TariffAgreement:
    """Return the agreement with the latest valid_to.

    Ties keep whichever was seen first.
    """
    current = None
    for agreement in agreements:
        if current is None or _valid_to_key(agreement) > _valid_to_key(current):
            current = agreement
    if current is None:
        raise NotFound("No tariff agreements found on meter point")
    return current


def parse_tariff_code(tariff_code: str) -> TariffCode:
    """Split a tariff code into product code and region.

    Format: E-1R-<PRODUCT>-<REGION>, e.g. E-1R-VAR-22-11-01-A.
    """
    parts = tariff_code.split(TARIFF_CODE_DELIMITER)
    if len(parts) < 4 or not parts[-1]:
        raise NotFound(f"Unrecognised tariff code: {tariff_code}")
    return TariffCode(product_code=TARIFF_CODE_DELIMITER.join(parts[2:-1]), region=parts[-1])


def rate_from_product(
    product: dict[str, Any], region: str, payment_method: str = DIRECT_DEBIT_MONTHLY
) -> TariffRate:
    """Extract the rate for a region from a product catalog entry."""
    tariffs = product.get("single_register_electricity_tariffs") or {}
    region_tariff = tariffs.get(f"_{region}")
    if not region_tariff:
        raise NotFound(f"No tariff for region {region} in product {product.get('code', '?')}")

    details = region_tariff.get(payment_method)
    if not details:
        raise NotFound(f"No {payment_method} tariff for region {region}")

    try:
        unit_rate = details["standard_unit_rate_inc_vat"]
        standing_charge = details["standing_charge_inc_vat"]
    except KeyError as e:
        raise NotFound(f"Missing {e.args[0]} in {payment_method} tariff for region {region}")

    return TariffRate(
        name=product.get("display_name") or product.get("full_name") or product.get("code", ""),
        unit_rate=pence_to_pounds(unit_rate, UNIT_RATE_PLACES),
        standing_charge=pence_to_pounds(standing_charge, MONEY_PLACES),
    )


async def resolve_tariff(client: OctopusClient, credentials: ProviderCredentials) -> TariffRate:
    """Resolve the account's current tariff rate.

    Errors propagate: the resolved rate feeds cost figures, so there is no
    fallback value.
    """
    account = await client.get_account(credentials.account_number)
    meter_point = find_meter_point(account, credentials.mpan)
    agreement = select_current_agreement(meter_point.agreements)
    code = parse_tariff_code(agreement.tariff_code)
    logger.info("Current tariff %s (product %s, region %s)", agreement.tariff_code, code.product_code, code.region)

    product = await client.get_product(code.product_code)
    return rate_from_product(product, code.region)
