from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from dotenv import load_dotenv
import os

from storefront.errors import ConfigError

load_dotenv()


def _env_str(name: str, default: str | None = None) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    raw = raw.strip()
    return raw if raw else default


def _env_int(name: str, *, required: bool = False, default: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        if required:
            raise RuntimeError(f"{name} is not set")
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer") from e


def _env_decimal(name: str, default: str) -> Decimal:
    raw = _env_str(name)
    if raw is None:
        return Decimal(default)
    try:
        value = Decimal(raw)
    except InvalidOperation:
        # parseFloat(...) || default
        return Decimal(default)
    if not value.is_finite() or value == 0:
        return Decimal(default)
    return value


# === App mode ===
# - APP_ENV=prod → production (PostgreSQL required)
# - APP_ENV=dev  → local development, debug logging by default
APP_ENV = (os.getenv("APP_ENV") or "prod").strip().lower()
IS_PROD = APP_ENV == "prod"


@dataclass(frozen=True)
class AppConfig:
    http_host: str
    http_port: int
    log_level: str


def load_config() -> AppConfig:
    return AppConfig(
        http_host=_env_str("HTTP_HOST", "0.0.0.0"),
        http_port=_env_int("HTTP_PORT", default=8080),
        log_level=(_env_str("LOG_LEVEL") or ("INFO" if IS_PROD else "DEBUG")).upper(),
    )


@dataclass(frozen=True)
class ShippingSettings:
    store_address: str | None
    geocoding_api_key: str | None
    base_fee: Decimal = Decimal("500")
    per_km_rate: Decimal = Decimal("100")
    max_distance_km: Decimal = Decimal("0")
    pickup_keyword: str = "retiro"

    def require_geocoding(self) -> None:
        if not self.store_address or not self.geocoding_api_key:
            raise ConfigError("STORE_ADDRESS and OPENCAGE_API_KEY are required to calculate shipping")


def load_shipping_settings() -> ShippingSettings:
    """Read on every shipping computation, so env changes apply without a restart."""
    max_km = _env_decimal("STORE_DELIVERY_MAX_KM", "0")
    return ShippingSettings(
        store_address=_env_str("STORE_ADDRESS"),
        geocoding_api_key=_env_str("OPENCAGE_API_KEY"),
        base_fee=_env_decimal("STORE_DELIVERY_BASE", "500"),
        per_km_rate=_env_decimal("STORE_DELIVERY_KM", "100"),
        max_distance_km=max_km if max_km > 0 else Decimal("0"),
        pickup_keyword=(_env_str("STORE_PICKUP_KEYWORD", "retiro") or "retiro").lower(),
    )
