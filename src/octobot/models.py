"""Data models for Octopus Energy responses and the status report."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal


@dataclass
class AuthToken:
    """A Kraken bearer token for the GraphQL API."""

    token: str
    refresh_token: str | None = None
    refresh_expires_in: int | None = None


@dataclass
class MeterDevice:
    """The smart meter endpoint used for live telemetry."""

    device_id: str


@dataclass
class TelemetryReading:
    """One instantaneous smart meter measurement."""

    read_at: datetime | None
    demand: Decimal | None  # watts; None when the meter reports no current demand
    consumption: Decimal | None = None


@dataclass
class TariffAgreement:
    """A dated tariff contract on a meter point."""

    tariff_code: str
    valid_from: datetime | None
    valid_to: datetime | None  # None = open-ended


@dataclass
class ElectricityMeterPoint:
    mpan: str
    agreements: list[TariffAgreement] = field(default_factory=list)


@dataclass
class Property:
    id: int | None
    meter_points: list[ElectricityMeterPoint] = field(default_factory=list)


@dataclass
class Account:
    number: str
    properties: list[Property] = field(default_factory=list)


@dataclass
class TariffCode:
    """A tariff code split into product code and region letter."""

    product_code: str
    region: str


@dataclass
class TariffRate:
    """Resolved pricing, in pounds."""

    name: str
    unit_rate: Decimal  # £/kWh, 4 dp
    standing_charge: Decimal  # £/day, 2 dp


@dataclass
class ConsumptionReading:
    """A single interval consumption record."""

    consumption: Decimal  # kWh
    interval_start: datetime | None = None
    interval_end: datetime | None = None


@dataclass
class ConsumptionWindow:
    """Aggregated usage and cost over a date range."""

    usage: Decimal  # kWh
    cost: Decimal  # £


@dataclass
class StatusReport:
    """Everything shown in one status message."""

    live_usage: Decimal  # watts
    yesterday: ConsumptionWindow
    last_30_days: ConsumptionWindow
    tariff: TariffRate
    generated_at: datetime
