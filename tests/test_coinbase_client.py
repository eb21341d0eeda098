from datetime import date

import pytest

from portfolio_tracker.providers import coinbase
from portfolio_tracker.providers.coinbase import CoinbaseClient
from portfolio_tracker.providers.http import ProviderError


def _serve(monkeypatch, outcome, seen: list | None = None) -> None:
    def fake_fetch_json(url, provider, timeout_seconds=15.0, params=None, headers=None, subject="data"):
        if seen is not None:
            seen.append({"url": url, "params": params, "headers": headers})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome(params) if callable(outcome) else outcome

    monkeypatch.setattr(coinbase, "fetch_json", fake_fetch_json)


def test_get_quote_reads_spot_amount(monkeypatch) -> None:
    seen: list = []
    _serve(monkeypatch, {"data": {"amount": "43210.55", "base": "BTC", "currency": "USD"}}, seen)
    quote = CoinbaseClient().get_quote("btc")
    assert quote.symbol == "BTC"
    assert quote.price == 43210.55
    assert quote.source == "coinbase"
    assert seen[0]["url"].endswith("/prices/BTC-USD/spot")


def test_unknown_pair_is_not_found(monkeypatch) -> None:
    _serve(monkeypatch, ProviderError("coinbase", "NOT_FOUND", "quote for NOPE not found", 404))
    with pytest.raises(ProviderError) as info:
        CoinbaseClient().get_quote("NOPE")
    assert info.value.code == "NOT_FOUND"
    assert info.value.message == "Cryptocurrency NOPE not found"


def test_missing_amount_is_not_found(monkeypatch) -> None:
    _serve(monkeypatch, {"data": {}})
    with pytest.raises(ProviderError) as info:
        CoinbaseClient().get_quote("BTC")
    assert info.value.message == "No data found for crypto: BTC"


def test_get_candles_maps_exchange_rows(monkeypatch) -> None:
    seen: list = []
    rows = [
        [1704326400, 41000.0, 43000.0, 42000.0, 42500.0, 1200.5],
        [1704240000, 40000.0, 42000.0, 40500.0, 41000.0, 900.0],
        ["bad"],
    ]
    _serve(monkeypatch, rows, seen)
    points = CoinbaseClient().get_candles("BTC", date(2024, 1, 1), date(2024, 1, 31))
    assert [point.date for point in points] == ["2024-01-03", "2024-01-04"]
    assert points[1].open == 42000.0
    assert points[1].low == 41000.0
    assert points[1].close == 42500.0
    assert seen[0]["url"].endswith("/products/BTC-USD/candles")
    assert seen[0]["params"]["granularity"] == 86400
    assert "User-Agent" in seen[0]["headers"]


def test_get_candles_pages_long_ranges(monkeypatch) -> None:
    seen: list = []
    _serve(monkeypatch, [[1704240000, 1.0, 1.0, 1.0, 1.0, 1.0]], seen)
    CoinbaseClient().get_candles("ETH", date(2024, 1, 1), date(2024, 12, 31))
    assert len(seen) == 2
    assert seen[0]["params"]["end"] == seen[1]["params"]["start"]


def test_get_candles_without_rows_is_no_data(monkeypatch) -> None:
    _serve(monkeypatch, [])
    with pytest.raises(ProviderError) as info:
        CoinbaseClient().get_candles("BTC", date(2024, 1, 1), date(2024, 1, 31))
    assert info.value.code == "NO_DATA"
