"""Octopus Energy API client.

Wraps the REST endpoints (account, products, consumption) and the Kraken
GraphQL endpoint (token, smart devices, live telemetry). Every method makes a
single attempt; failures surface as UpstreamUnavailable, missing records as
NotFound.
"""

import logging
from datetime import datetime
from typing import Any

import httpx

from ..config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from ..errors import NotFound, UpstreamUnavailable
from ..models import (
    Account,
    AuthToken,
    ConsumptionReading,
    ElectricityMeterPoint,
    MeterDevice,
    Property,
    TariffAgreement,
    TelemetryReading,
)
from ..units import to_decimal

logger = logging.getLogger(__name__)

OBTAIN_TOKEN_MUTATION = """
mutation obtainKrakenToken($input: ObtainJSONWebTokenInput!) {
  obtainKrakenToken(input: $input) {
    token
    refreshToken
    refreshExpiresIn
  }
}
"""

SMART_DEVICES_QUERY = """
query smartDevices($accountNumber: String!) {
  account(accountNumber: $accountNumber) {
    electricityAgreements(active: true) {
      meterPoint {
        meters(includeInactive: false) {
          smartDevices {
            deviceId
          }
        }
      }
    }
  }
}
"""

TELEMETRY_QUERY = """
query telemetry($deviceId: String!) {
  smartMeterTelemetry(deviceId: $deviceId) {
    readAt
    demand
    consumption
  }
}
"""


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp from the API ('Z' suffix allowed)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _require(data: dict[str, Any] | None, key: str, what: str) -> Any:
    if not isinstance(data, dict) or data.get(key) is None:
        raise NotFound(f"Missing '{key}' in {what} response")
    return data[key]


def parse_account(data: dict[str, Any], account_number: str) -> Account:
    """Map the /accounts/{number}/ payload to an Account."""
    properties = []
    for prop in _require(data, "properties", "account"):
        meter_points = []
        for point in prop.get("electricity_meter_points") or []:
            agreements = [
                TariffAgreement(
                    tariff_code=_require(a, "tariff_code", "agreement"),
                    valid_from=parse_datetime(a.get("valid_from")),
                    valid_to=parse_datetime(a.get("valid_to")),
                )
                for a in point.get("agreements") or []
            ]
            meter_points.append(
                ElectricityMeterPoint(mpan=_require(point, "mpan", "meter point"), agreements=agreements)
            )
        properties.append(Property(id=prop.get("id"), meter_points=meter_points))
    return Account(number=data.get("number") or account_number, properties=properties)


def parse_device(data: dict[str, Any]) -> MeterDevice:
    """Pick the first smart device of the first meter of the first active agreement."""
    account = _require(data, "account", "smart device")
    agreements = account.get("electricityAgreements")
    if not agreements:
        raise NotFound("No active electricity agreements found")

    meters = (agreements[0].get("meterPoint") or {}).get("meters")
    if not meters:
        raise NotFound("No active meters found")

    devices = meters[0].get("smartDevices")
    if not devices:
        raise NotFound("No smart devices found")

    return MeterDevice(device_id=_require(devices[0], "deviceId", "smart device"))


def parse_telemetry(data: dict[str, Any]) -> list[TelemetryReading]:
    readings = []
    for row in data.get("smartMeterTelemetry") or []:
        demand = row.get("demand")
        consumption = row.get("consumption")
        readings.append(
            TelemetryReading(
                read_at=parse_datetime(row.get("readAt")),
                demand=to_decimal(demand) if demand is not None else None,
                consumption=to_decimal(consumption) if consumption is not None else None,
            )
        )
    return readings


class OctopusClient:
    """Async client for the Octopus Energy API.

    Use as an async context manager; an existing httpx.AsyncClient can be
    passed in (e.g. one built on httpx.MockTransport) and is then left open.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "OctopusClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    @property
    def graphql_url(self) -> str:
        return f"{self.base_url}/graphql/"

    async def _send(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._http.request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(
                f"HTTP error from Octopus Energy: {e.response.status_code} {e.response.reason_phrase} ({url})"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Network error connecting to Octopus Energy: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Invalid JSON from Octopus Energy ({url})") from e

    async def _rest_get(self, path: str, params: dict | None = None, auth: bool = True) -> Any:
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        return await self._send(
            "GET",
            url,
            params=params,
            auth=(self.api_key, "") if auth else None,
        )

    async def _graphql(self, query: str, variables: dict, token: AuthToken | None = None) -> dict:
        headers = {"Content-Type": "application/json"}
        if token is not None:
            headers["Authorization"] = f"JWT {token.token}"
        payload = await self._send(
            "POST",
            self.graphql_url,
            json={"query": query, "variables": variables},
            headers=headers,
        )
        if isinstance(payload, dict) and payload.get("errors"):
            messages = "; ".join(err.get("message", "unknown error") for err in payload["errors"])
            raise UpstreamUnavailable(f"GraphQL error from Octopus Energy: {messages}")
        return _require(payload, "data", "GraphQL")

    async def obtain_token(self) -> AuthToken:
        """Exchange the API key for a Kraken bearer token."""
        logger.info("🔑 Obtaining Kraken token...")
        data = await self._graphql(OBTAIN_TOKEN_MUTATION, {"input": {"APIKey": self.api_key}})
        result = _require(data, "obtainKrakenToken", "token")
        logger.info("✅ Kraken token obtained")
        return AuthToken(
            token=_require(result, "token", "token"),
            refresh_token=result.get("refreshToken"),
            refresh_expires_in=result.get("refreshExpiresIn"),
        )

    async def get_smart_device(self, token: AuthToken, account_number: str) -> MeterDevice:
        """Look up the smart meter device identifier for the account."""
        logger.info("🔍 Looking up smart meter device...")
        data = await self._graphql(SMART_DEVICES_QUERY, {"accountNumber": account_number}, token)
        device = parse_device(data)
        logger.info("✅ Smart meter device found: %s", device.device_id)
        return device

    async def get_telemetry(self, token: AuthToken, device_id: str) -> list[TelemetryReading]:
        """Fetch the current smart meter telemetry for a device."""
        data = await self._graphql(TELEMETRY_QUERY, {"deviceId": device_id}, token)
        return parse_telemetry(data)

    async def get_account(self, account_number: str) -> Account:
        data = await self._rest_get(f"/accounts/{account_number}/")
        return parse_account(data, account_number)

    async def get_product(self, product_code: str) -> dict[str, Any]:
        """Fetch a product's tariff catalog (unauthenticated)."""
        return await self._rest_get(f"/products/{product_code}/", auth=False)

    async def get_consumption(
        self,
        mpan: str,
        serial_number: str,
        period_from: str,
        period_to: str,
        page_size: int = 1000,
    ) -> list[ConsumptionReading]:
        """Fetch interval consumption for a meter, following pagination.

        Args:
            mpan: Meter point administration number
            serial_number: Meter serial number
            period_from: ISO 8601 UTC start (inclusive)
            period_to: ISO 8601 UTC end
            page_size: Records requested per page

        Returns:
            List of ConsumptionReading objects, in the order the API returns them
        """
        url = f"/electricity-meter-points/{mpan}/meters/{serial_number}/consumption/"
        params: dict | None = {
            "period_from": period_from,
            "period_to": period_to,
            "page_size": page_size,
        }

        readings = []
        while url:
            data = await self._rest_get(url, params=params)
            for row in _require(data, "results", "consumption"):
                readings.append(
                    ConsumptionReading(
                        consumption=to_decimal(_require(row, "consumption", "consumption")),
                        interval_start=parse_datetime(row.get("interval_start")),
                        interval_end=parse_datetime(row.get("interval_end")),
                    )
                )
            # The next link already carries the query string
            url = data.get("next")
            params = None

        logger.debug("Fetched %d consumption readings for %s → %s", len(readings), period_from, period_to)
        return readings
