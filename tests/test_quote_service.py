import asyncio
from datetime import date

import pytest

from portfolio_tracker.cache.ttl_cache import TTLCache
from portfolio_tracker.providers.coinbase import CoinbaseClient
from portfolio_tracker.providers.finnhub import FinnhubClient
from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.providers.models import AssetPrice, HistoryPoint
from portfolio_tracker.services.base import ServiceContext
from portfolio_tracker.services.quote_service import QuoteService


def _price(symbol: str, price: float, source: str = "finnhub") -> AssetPrice:
    return AssetPrice(symbol=symbol, price=price, currency="USD", timestamp="2024-01-01T00:00:00.000Z", source=source)


def _service(monkeypatch, stock_quotes=None, crypto_quotes=None, quote_retries: int = 1):
    finnhub_client = FinnhubClient("key")
    coinbase_client = CoinbaseClient()
    calls: list[str] = []

    def quote_from(table, source):
        def get_quote(symbol: str) -> AssetPrice:
            calls.append(symbol)
            outcome = table[symbol]
            if isinstance(outcome, list):
                outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
            if isinstance(outcome, Exception):
                raise outcome
            return _price(symbol, outcome, source)

        return get_quote

    monkeypatch.setattr(finnhub_client, "get_quote", quote_from(stock_quotes or {}, "finnhub"))
    monkeypatch.setattr(coinbase_client, "get_quote", quote_from(crypto_quotes or {}, "coinbase"))
    monkeypatch.setattr("portfolio_tracker.services.quote_service.time.sleep", lambda _: None)
    ctx = ServiceContext(
        providers={"finnhub": finnhub_client, "coinbase": coinbase_client},
        cache=TTLCache(default_ttl_seconds=30),
        quote_retries=quote_retries,
    )
    return QuoteService(ctx), calls


def test_routes_by_asset_type(monkeypatch) -> None:
    service, _ = _service(monkeypatch, stock_quotes={"AAPL": 190.0}, crypto_quotes={"BTC": 40000.0})
    assert service.get_current_price("aapl", "stock").source == "finnhub"
    assert service.get_current_price("btc", "crypto").source == "coinbase"


def test_quotes_are_cached(monkeypatch) -> None:
    service, calls = _service(monkeypatch, stock_quotes={"AAPL": 190.0})
    service.get_current_price("AAPL")
    service.get_current_price("AAPL")
    assert calls == ["AAPL"]


def test_refresh_drops_cached_quotes(monkeypatch) -> None:
    service, calls = _service(monkeypatch, stock_quotes={"AAPL": 190.0})
    service.get_current_price("AAPL")
    assert service.refresh() == 1
    service.get_current_price("AAPL")
    assert calls == ["AAPL", "AAPL"]


def test_retriable_quote_failure_is_retried_once(monkeypatch) -> None:
    service, calls = _service(
        monkeypatch,
        stock_quotes={"AAPL": [ProviderError("finnhub", "RATE_LIMIT", "slow"), 190.0]},
    )
    assert service.get_current_price("AAPL").price == 190.0
    assert calls == ["AAPL", "AAPL"]


def test_non_retriable_quote_failure_is_not_retried(monkeypatch) -> None:
    service, calls = _service(
        monkeypatch,
        stock_quotes={"ZZZZ": ProviderError("finnhub", "NOT_FOUND", "No data found for symbol: ZZZZ")},
    )
    with pytest.raises(ProviderError):
        service.get_current_price("ZZZZ")
    assert calls == ["ZZZZ"]


def test_missing_stock_provider_is_auth_error() -> None:
    service = QuoteService(ServiceContext(providers={"finnhub": None, "coinbase": CoinbaseClient()}))
    with pytest.raises(ProviderError) as info:
        service.get_current_price("AAPL", "stock")
    assert info.value.code == "AUTH"


def test_get_quote_envelopes_errors(monkeypatch) -> None:
    service, _ = _service(
        monkeypatch,
        stock_quotes={"ZZZZ": ProviderError("finnhub", "NOT_FOUND", "No data found for symbol: ZZZZ")},
    )
    result = service.get_quote("ZZZZ")
    assert result.data is None
    assert result.error.code == "NOT_FOUND"
    assert result.error.provider == "finnhub"
    assert not result.error.retriable


def test_get_current_prices_keeps_successes_only(monkeypatch) -> None:
    service, calls = _service(
        monkeypatch,
        stock_quotes={"AAPL": 190.0, "ZZZZ": ProviderError("finnhub", "NOT_FOUND", "missing")},
        crypto_quotes={"BTC": 40000.0},
    )
    holdings = [("AAPL", "stock"), ("ZZZZ", "stock"), ("BTC", "crypto"), ("AAPL", "stock")]
    prices = asyncio.run(service.get_current_prices(holdings))
    assert prices == {"AAPL": 190.0, "BTC": 40000.0}
    assert sorted(calls) == ["AAPL", "BTC", "ZZZZ"]


def test_get_current_prices_for_no_holdings_makes_no_calls(monkeypatch) -> None:
    service, calls = _service(monkeypatch)
    assert asyncio.run(service.get_current_prices([])) == {}
    assert calls == []


def test_history_is_cached_and_single_attempt(monkeypatch) -> None:
    service, _ = _service(monkeypatch)
    client = service.ctx.providers["finnhub"]
    history_calls: list[str] = []

    def get_candles(symbol, from_date, to_date, timeout_seconds=None):
        history_calls.append(symbol)
        return [HistoryPoint(date="2024-01-02", open=1, high=1, low=1, close=1, volume=1)]

    monkeypatch.setattr(client, "get_candles", get_candles)
    first = service.get_history("AAPL", date(2024, 1, 1), date(2024, 1, 31))
    second = service.get_history("AAPL", date(2024, 1, 1), date(2024, 1, 31))
    assert first == second
    assert history_calls == ["AAPL"]

    def failing(symbol, from_date, to_date, timeout_seconds=None):
        history_calls.append(symbol)
        raise ProviderError("finnhub", "UPSTREAM", "boom")

    monkeypatch.setattr(client, "get_candles", failing)
    with pytest.raises(ProviderError):
        service.get_history("MSFT", date(2024, 1, 1), date(2024, 1, 31))
    assert history_calls == ["AAPL", "MSFT"]
