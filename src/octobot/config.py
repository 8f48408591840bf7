"""Process configuration loaded from the environment.

Values are read once at startup (optionally from a .env file) and passed
explicitly into every component.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .errors import ConfigurationMissing

DEFAULT_BASE_URL = "https://api.octopus.energy/v1"
DEFAULT_TELEGRAM_BASE_URL = "https://api.telegram.org"
DEFAULT_TIMEOUT = 30.0

BOT_TOKEN_VAR = "TELEGRAM_BOT_TOKEN"
CREDENTIAL_VARS = {
    "api_key": "OCTOPUS_API_KEY",
    "mpan": "OCTOPUS_MPAN",
    "serial_number": "OCTOPUS_SERIAL_NUMBER",
    "account_number": "OCTOPUS_ACCOUNT_NUMBER",
}


@dataclass(frozen=True)
class ProviderCredentials:
    """Account identity for the Octopus Energy API."""

    api_key: str
    mpan: str
    serial_number: str
    account_number: str


@dataclass(frozen=True)
class Settings:
    """Immutable process-wide settings."""

    bot_token: str | None
    credentials: ProviderCredentials
    base_url: str = DEFAULT_BASE_URL
    telegram_base_url: str = DEFAULT_TELEGRAM_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


def _read(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings(require_bot_token: bool = True) -> Settings:
    """Build Settings from environment variables (and .env if present).

    Raises ConfigurationMissing listing every required variable that is unset.
    """
    load_dotenv()

    values = {field: _read(var) for field, var in CREDENTIAL_VARS.items()}
    bot_token = _read(BOT_TOKEN_VAR)

    missing = [CREDENTIAL_VARS[field] for field, value in values.items() if value is None]
    if require_bot_token and bot_token is None:
        missing.insert(0, BOT_TOKEN_VAR)
    if missing:
        raise ConfigurationMissing(
            f"Missing required environment variable(s): {', '.join(missing)}\n"
            "Set them in your environment or in a .env file, e.g.\n"
            f"export {missing[0]}='...'"
        )

    timeout = _read("OCTOPUS_TIMEOUT")
    try:
        timeout_seconds = float(timeout) if timeout else DEFAULT_TIMEOUT
    except ValueError as e:
        raise ConfigurationMissing(f"Invalid OCTOPUS_TIMEOUT {timeout!r}: expected a number of seconds") from e

    return Settings(
        bot_token=bot_token,
        credentials=ProviderCredentials(**values),
        base_url=(_read("OCTOPUS_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
        telegram_base_url=(_read("TELEGRAM_BASE_URL") or DEFAULT_TELEGRAM_BASE_URL).rstrip("/"),
        timeout=timeout_seconds,
    )
