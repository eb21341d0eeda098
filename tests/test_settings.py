import os

from portfolio_tracker.config import settings as settings_module
from portfolio_tracker.config.settings import DEFAULT_STORAGE_PATH, get_settings
from portfolio_tracker.main import build_services

ENV_KEYS = (
    "FINNHUB_API_KEY",
    "COINBASE_ENABLED",
    "PORTFOLIO_STORAGE_PATH",
    "QUOTE_RETRIES",
    "HISTORY_RETRIES",
    "CACHE_TTL_QUOTE_SECONDS",
    "REQUEST_TIMEOUT_SECONDS",
    "LOG_LEVEL",
)


def _clean_env(monkeypatch) -> None:
    monkeypatch.setattr(settings_module, "load_dotenv", lambda: False)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(monkeypatch) -> None:
    _clean_env(monkeypatch)
    settings = get_settings()
    assert settings.finnhub_api_key is None
    assert settings.coinbase_enabled is True
    assert settings.storage_path == DEFAULT_STORAGE_PATH
    assert settings.quote_retries == 1
    assert settings.history_retries == 2
    assert settings.cache_ttl_quote_seconds == 30
    assert settings.cache_ttl_history_seconds == 300
    assert settings.history_timeout_seconds == 10.0
    assert os.path.isabs(settings.resolved_storage_path)


def test_env_overrides_and_bad_values(monkeypatch) -> None:
    _clean_env(monkeypatch)
    monkeypatch.setenv("FINNHUB_API_KEY", "abc")
    monkeypatch.setenv("COINBASE_ENABLED", "off")
    monkeypatch.setenv("QUOTE_RETRIES", "-3")
    monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "fast")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = get_settings()
    assert settings.finnhub_api_key == "abc"
    assert settings.coinbase_enabled is False
    assert settings.quote_retries == 0
    assert settings.request_timeout_seconds == 15.0
    assert settings.log_level == "DEBUG"


def test_build_services_wires_configured_providers(monkeypatch, tmp_path) -> None:
    _clean_env(monkeypatch)
    monkeypatch.setenv("PORTFOLIO_STORAGE_PATH", str(tmp_path / "storage.json"))
    monkeypatch.setenv("COINBASE_ENABLED", "false")
    services = build_services(get_settings())
    providers = services.portfolio.quotes.ctx.providers
    assert providers["finnhub"] is None
    assert providers["coinbase"] is None
    services.portfolio.create_portfolio("Saved")
    assert (tmp_path / "storage.json").exists()
