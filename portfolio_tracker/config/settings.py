"""Environment-driven settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_STORAGE_PATH = os.path.join("~", ".portfolio_tracker", "storage.json")


@dataclass(frozen=True)
class Settings:
    """Runtime settings for the local portfolio tracker."""

    app_name: str = "portfolio-tracker"
    app_version: str = "1.0.0"
    transport_mode: str = "auto"
    http_transport: str = "sse"
    host: str = "127.0.0.1"
    port: int = 8000
    health_path: str = "/health"
    log_level: str = "INFO"
    finnhub_api_key: str | None = None
    coinbase_enabled: bool = True
    storage_path: str = DEFAULT_STORAGE_PATH
    request_timeout_seconds: float = 15.0
    history_timeout_seconds: float = 10.0
    quote_retries: int = 1
    history_retries: int = 2
    provider_min_interval_seconds: float = 0.2
    cache_ttl_quote_seconds: int = 30
    cache_ttl_history_seconds: int = 300

    @property
    def resolved_storage_path(self) -> str:
        return os.path.abspath(os.path.expanduser(self.storage_path))


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_settings() -> Settings:
    """Load runtime settings from environment variables."""
    load_dotenv()

    return Settings(
        transport_mode=os.getenv("TRANSPORT_MODE", "auto").strip().lower(),
        http_transport=os.getenv("HTTP_TRANSPORT", "sse").strip().lower(),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_as_int(os.getenv("PORT"), 8000),
        health_path=os.getenv("HEALTH_PATH", "/health"),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        finnhub_api_key=os.getenv("FINNHUB_API_KEY") or None,
        coinbase_enabled=_as_bool(os.getenv("COINBASE_ENABLED"), True),
        storage_path=os.getenv("PORTFOLIO_STORAGE_PATH") or DEFAULT_STORAGE_PATH,
        request_timeout_seconds=_as_float(os.getenv("REQUEST_TIMEOUT_SECONDS"), 15.0),
        history_timeout_seconds=_as_float(os.getenv("HISTORY_TIMEOUT_SECONDS"), 10.0),
        quote_retries=max(0, _as_int(os.getenv("QUOTE_RETRIES"), 1)),
        history_retries=max(0, _as_int(os.getenv("HISTORY_RETRIES"), 2)),
        provider_min_interval_seconds=_as_float(os.getenv("PROVIDER_MIN_INTERVAL_SECONDS"), 0.2),
        cache_ttl_quote_seconds=_as_int(os.getenv("CACHE_TTL_QUOTE_SECONDS"), 30),
        cache_ttl_history_seconds=_as_int(os.getenv("CACHE_TTL_HISTORY_SECONDS"), 300),
    )
