"""Shared fixtures: a fake Octopus Energy API served through httpx.MockTransport."""

import json
from datetime import datetime, timezone

import httpx
import pytest
from octobot.collectors.octopus import OctopusClient
from octobot.config import ProviderCredentials

BASE_URL = "https://octopus.test/v1"
MPAN = "1200000000000"
SERIAL = "21L0000000"
ACCOUNT = "A-ABC12345"
NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FakeOctopus:
    """Canned responses for every endpoint the client uses.

    Tweak the attributes in a test to shape the responses; add a path
    fragment (or "graphql:<operation>") to ``fail`` to answer it with a 500.
    """

    def __init__(self):
        self.token = {"token": "jwt-token", "refreshToken": "refresh", "refreshExpiresIn": 604800}
        self.devices = {
            "account": {
                "electricityAgreements": [
                    {"meterPoint": {"meters": [{"smartDevices": [{"deviceId": "00-11-22-33"}]}]}}
                ]
            }
        }
        self.telemetry = [{"readAt": "2026-10-19T11:59:50+00:00", "demand": 350.0, "consumption": 1234.5}]
        self.account = {
            "number": ACCOUNT,
            "properties": [
                {
                    "id": 1,
                    "electricity_meter_points": [
                        {
                            "mpan": MPAN,
                            "agreements": [
                                {
                                    "tariff_code": "E-1R-VAR-21-09-29-A",
                                    "valid_from": "2022-01-01T00:00:00Z",
                                    "valid_to": "2023-01-01T00:00:00Z",
                                },
                                {
                                    "tariff_code": "E-1R-VAR-22-11-01-A",
                                    "valid_from": "2023-01-01T00:00:00Z",
                                    "valid_to": None,
                                },
                            ],
                        }
                    ],
                }
            ],
        }
        self.products = {
            "VAR-22-11-01": {
                "code": "VAR-22-11-01",
                "display_name": "Flexible Octopus",
                "single_register_electricity_tariffs": {
                    "_A": {
                        "direct_debit_monthly": {
                            "code": "E-1R-VAR-22-11-01-A",
                            "standard_unit_rate_inc_vat": 27.12,
                            "standing_charge_inc_vat": 48.65,
                        }
                    }
                },
            }
        }
        # period_from date → consumption values
        self.consumption = {
            "2026-10-18": [2.5, 3.1, 2.6],
            "2026-09-19": [100.25, 110.25],
        }
        self.fail: set[str] = set()
        self.requests: list[httpx.Request] = []

    def _graphql(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        query = body["query"]
        if "obtainKrakenToken" in query:
            operation, data = "token", {"obtainKrakenToken": self.token}
        elif "smartDevices" in query:
            operation, data = "devices", self.devices
        elif "smartMeterTelemetry" in query:
            operation, data = "telemetry", {"smartMeterTelemetry": self.telemetry}
        else:
            return httpx.Response(400, json={"errors": [{"message": "unknown query"}]})
        if f"graphql:{operation}" in self.fail:
            return httpx.Response(500)
        return httpx.Response(200, json={"data": data})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if any(fragment in path for fragment in self.fail):
            return httpx.Response(500, json={"detail": "boom"})

        if path.endswith("/graphql/"):
            return self._graphql(request)
        if path.endswith(f"/accounts/{ACCOUNT}/"):
            return httpx.Response(200, json=self.account)
        if "/products/" in path:
            code = path.rstrip("/").rsplit("/", 1)[-1]
            if code not in self.products:
                return httpx.Response(404, json={"detail": "Not found."})
            return httpx.Response(200, json=self.products[code])
        if path.endswith("/consumption/"):
            day = request.url.params["period_from"][:10]
            results = [{"consumption": value} for value in self.consumption.get(day, [])]
            return httpx.Response(200, json={"count": len(results), "next": None, "results": results})
        return httpx.Response(404, json={"detail": "Not found."})


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def credentials() -> ProviderCredentials:
    return ProviderCredentials(api_key="sk_test_key", mpan=MPAN, serial_number=SERIAL, account_number=ACCOUNT)


@pytest.fixture
def fake_octopus() -> FakeOctopus:
    return FakeOctopus()


@pytest.fixture
def client(fake_octopus) -> OctopusClient:
    """OctopusClient talking to the fake API (no network required)."""
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_octopus.handler))
    return OctopusClient("sk_test_key", base_url=BASE_URL, http=http)


@pytest.fixture
def now() -> datetime:
    return NOW
