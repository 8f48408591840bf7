"""Tests for tariff resolution."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from octobot.errors import NotFound, UpstreamUnavailable
from octobot.models import Account, ElectricityMeterPoint, Property, TariffAgreement
from octobot.tariffs import (
    find_meter_point,
    parse_tariff_code,
    rate_from_product,
    resolve_tariff,
    select_current_agreement,
)


def agreement(code, valid_to):
    return TariffAgreement(tariff_code=code, valid_from=None, valid_to=valid_to)


def test_parse_tariff_code():
    code = parse_tariff_code("E-1R-VAR-22-11-01-A")
    assert code.product_code == "VAR-22-11-01"
    assert code.region == "A"


@pytest.mark.parametrize("bad", ["", "E-1R", "E-1R-A", "E-1R-VAR-"])
def test_parse_tariff_code_rejects_malformed(bad):
    with pytest.raises(NotFound):
        parse_tariff_code(bad)


def test_select_current_agreement_latest_valid_to():
    agreements = [
        agreement("E-1R-OLD-A", datetime(2023, 1, 1, tzinfo=timezone.utc)),
        agreement("E-1R-NEW-A", datetime(2025, 6, 1, tzinfo=timezone.utc)),
        agreement("E-1R-MID-A", datetime(2024, 1, 1, tzinfo=timezone.utc)),
    ]
    assert select_current_agreement(agreements).tariff_code == "E-1R-NEW-A"


def test_select_current_agreement_open_ended_wins():
    agreements = [
        agreement("E-1R-OPEN-A", None),
        agreement("E-1R-DATED-A", datetime(2099, 1, 1, tzinfo=timezone.utc)),
    ]
    assert select_current_agreement(agreements).tariff_code == "E-1R-OPEN-A"


def test_select_current_agreement_empty():
    with pytest.raises(NotFound):
        select_current_agreement([])


def test_find_meter_point_first_property_wins():
    account = Account(
        number="A-1",
        properties=[
            Property(id=1, meter_points=[ElectricityMeterPoint("999")]),
            Property(id=2, meter_points=[ElectricityMeterPoint("123", [agreement("E-1R-X-Y-A", None)])]),
            Property(id=3, meter_points=[ElectricityMeterPoint("123")]),
        ],
    )
    assert find_meter_point(account, "123").agreements[0].tariff_code == "E-1R-X-Y-A"

    with pytest.raises(NotFound, match="MPAN 555"):
        find_meter_point(account, "555")


def test_rate_from_product_missing_region():
    product = {"code": "VAR", "single_register_electricity_tariffs": {"_A": {}}}
    with pytest.raises(NotFound, match="region C"):
        rate_from_product(product, "C")


def test_rate_from_product_missing_payment_method():
    product = {
        "single_register_electricity_tariffs": {"_A": {"prepayment": {"standard_unit_rate_inc_vat": 30}}}
    }
    with pytest.raises(NotFound, match="direct_debit_monthly"):
        rate_from_product(product, "A")


@pytest.mark.anyio
async def test_resolve_tariff(client, credentials):
    rate = await resolve_tariff(client, credentials)
    assert rate.name == "Flexible Octopus"
    assert rate.unit_rate == Decimal("0.2712")
    assert rate.standing_charge == Decimal("0.49")


@pytest.mark.anyio
async def test_resolve_tariff_unknown_mpan(client, credentials, fake_octopus):
    fake_octopus.account["properties"][0]["electricity_meter_points"][0]["mpan"] = "0000"
    with pytest.raises(NotFound):
        await resolve_tariff(client, credentials)


@pytest.mark.anyio
async def test_resolve_tariff_no_agreements(client, credentials, fake_octopus):
    fake_octopus.account["properties"][0]["electricity_meter_points"][0]["agreements"] = []
    with pytest.raises(NotFound):
        await resolve_tariff(client, credentials)


@pytest.mark.anyio
async def test_resolve_tariff_product_unavailable(client, credentials, fake_octopus):
    fake_octopus.fail.add("/products/")
    with pytest.raises(UpstreamUnavailable, match="500"):
        await resolve_tariff(client, credentials)
