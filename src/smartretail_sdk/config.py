from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Iterable

from dotenv import load_dotenv


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 3
    retry_backoff_seconds: float = 0.3
    max_connections: int = 20
    verify_ssl: bool = True
    merchant_name: str = "SmartRetails"
    currency: str = "INR"
    page_size: int = 5
    fallback_page_size: int = 1000
    reconcile_concurrency: int = 10

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("SMARTRETAIL_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"SMARTRETAIL_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("SMARTRETAIL_API_BASE_URL") or "").strip()
    )

    timeout_seconds = _read_float("SMARTRETAIL_TIMEOUT_SECONDS", "10")
    _validate(
        timeout_seconds > 0,
        f"Invalid SMARTRETAIL_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    connect_timeout_seconds = _read_float(
        "SMARTRETAIL_CONNECT_TIMEOUT_SECONDS", str(min(timeout_seconds, 5.0))
    )
    _validate(
        connect_timeout_seconds > 0,
        (
            "Invalid SMARTRETAIL_CONNECT_TIMEOUT_SECONDS: "
            f"expected > 0, got {connect_timeout_seconds}"
        ),
    )

    read_timeout_seconds = _read_float(
        "SMARTRETAIL_READ_TIMEOUT_SECONDS",
        str(max(timeout_seconds, connect_timeout_seconds)),
    )
    _validate(
        read_timeout_seconds > 0,
        f"Invalid SMARTRETAIL_READ_TIMEOUT_SECONDS: expected > 0, got {read_timeout_seconds}",
    )

    retries = _read_int("SMARTRETAIL_RETRIES", "3")
    _validate(retries >= 0, f"Invalid SMARTRETAIL_RETRIES: expected >= 0, got {retries}")

    retry_backoff_seconds = _read_float("SMARTRETAIL_RETRY_BACKOFF_SECONDS", "0.3")
    _validate(
        retry_backoff_seconds >= 0,
        f"Invalid SMARTRETAIL_RETRY_BACKOFF_SECONDS: expected >= 0, got {retry_backoff_seconds}",
    )

    max_connections = _read_int("SMARTRETAIL_MAX_CONNECTIONS", "20")
    _validate(
        max_connections >= 1,
        f"Invalid SMARTRETAIL_MAX_CONNECTIONS: expected >= 1, got {max_connections}",
    )

    page_size = _read_int("SMARTRETAIL_PAGE_SIZE", "5")
    _validate(page_size >= 1, f"Invalid SMARTRETAIL_PAGE_SIZE: expected >= 1, got {page_size}")

    fallback_page_size = _read_int("SMARTRETAIL_FALLBACK_PAGE_SIZE", "1000")
    _validate(
        fallback_page_size >= page_size,
        (
            "Invalid SMARTRETAIL_FALLBACK_PAGE_SIZE: "
            f"expected >= SMARTRETAIL_PAGE_SIZE ({page_size}), got {fallback_page_size}"
        ),
    )

    reconcile_concurrency = _read_int("SMARTRETAIL_RECONCILE_CONCURRENCY", "10")
    _validate(
        reconcile_concurrency >= 1,
        f"Invalid SMARTRETAIL_RECONCILE_CONCURRENCY: expected >= 1, got {reconcile_concurrency}",
    )

    merchant_name = (os.getenv("SMARTRETAIL_MERCHANT_NAME") or "SmartRetails").strip()
    currency = (os.getenv("SMARTRETAIL_CURRENCY") or "INR").strip().upper()
    _validate(
        len(currency) == 3 and currency.isalpha(),
        f"Invalid SMARTRETAIL_CURRENCY: expected a 3-letter code, got {currency!r}",
    )

    verify_ssl = _coerce_bool(os.getenv("SMARTRETAIL_VERIFY_SSL"), True)

    values = {"SMARTRETAIL_API_BASE_URL": api_base_url}
    _require(values, ["SMARTRETAIL_API_BASE_URL"])

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        connect_timeout_seconds=connect_timeout_seconds,
        read_timeout_seconds=read_timeout_seconds,
        retries=retries,
        retry_backoff_seconds=retry_backoff_seconds,
        max_connections=max_connections,
        verify_ssl=verify_ssl,
        merchant_name=merchant_name,
        currency=currency,
        page_size=page_size,
        fallback_page_size=fallback_page_size,
        reconcile_concurrency=reconcile_concurrency,
    )
