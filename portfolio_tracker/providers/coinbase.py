"""Coinbase adapter for crypto spot prices and daily candles (USD pairs)."""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone

from portfolio_tracker.providers.http import ProviderError, fetch_json
from portfolio_tracker.providers.models import AssetPrice, HistoryPoint, finalize_history

COINBASE_API = "https://api.coinbase.com/v2"
COINBASE_EXCHANGE_API = "https://api.exchange.coinbase.com"
DAILY_GRANULARITY = 86400
MAX_CANDLES_PER_REQUEST = 300
USER_AGENT = "portfolio-tracker/1.0"


def _to_float(value: object) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_utc(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


class CoinbaseClient:
    """Public Coinbase endpoints; no API key required."""

    def __init__(self, timeout_seconds: float = 15.0) -> None:
        self.timeout_seconds = timeout_seconds

    @staticmethod
    def _pair(symbol: str) -> str:
        return f"{symbol.strip().upper()}-USD"

    def get_quote(self, symbol: str) -> AssetPrice:
        clean = symbol.strip().upper()
        try:
            data = fetch_json(
                f"{COINBASE_API}/prices/{self._pair(clean)}/spot",
                provider="coinbase",
                timeout_seconds=self.timeout_seconds,
                subject=f"quote for {clean}",
            )
        except ProviderError as error:
            if error.code == "NOT_FOUND":
                raise ProviderError("coinbase", "NOT_FOUND", f"Cryptocurrency {clean} not found", error.status) from error
            raise
        payload = data.get("data") if isinstance(data, dict) else None
        price = _to_float(payload.get("amount")) if isinstance(payload, dict) else None
        if price is None:
            raise ProviderError("coinbase", "NOT_FOUND", f"No data found for crypto: {clean}")
        return AssetPrice(symbol=clean, price=price, currency="USD", timestamp=_iso_now(), source="coinbase")

    def _candle_window(self, clean: str, start: datetime, end: datetime, timeout_seconds: float) -> list[HistoryPoint]:
        try:
            rows = fetch_json(
                f"{COINBASE_EXCHANGE_API}/products/{self._pair(clean)}/candles",
                provider="coinbase",
                timeout_seconds=timeout_seconds,
                params={
                    "granularity": DAILY_GRANULARITY,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                },
                headers={"User-Agent": USER_AGENT},
                subject=f"historical data for {clean}",
            )
        except ProviderError as error:
            if error.code == "NOT_FOUND":
                raise ProviderError("coinbase", "NOT_FOUND", f"Cryptocurrency {clean} not found", error.status) from error
            raise
        if not isinstance(rows, list):
            raise ProviderError("coinbase", "BAD_RESPONSE", f"Invalid data received for {clean}")
        points: list[HistoryPoint] = []
        for row in rows:
            if not isinstance(row, list) or len(row) < 6:
                continue
            ts, low, high, open_value, close, volume = (_to_float(value) for value in row[:6])
            if ts is None or low is None or high is None or open_value is None or close is None or volume is None:
                continue
            points.append(
                HistoryPoint(
                    date=datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d"),
                    open=open_value,
                    high=high,
                    low=low,
                    close=close,
                    volume=volume,
                )
            )
        return points

    def get_candles(
        self,
        symbol: str,
        from_date: date | datetime,
        to_date: date | datetime,
        timeout_seconds: float | None = None,
    ) -> list[HistoryPoint]:
        clean = symbol.strip().upper()
        start = _as_utc(from_date)
        end = _as_utc(to_date)
        if start >= end:
            raise ProviderError("coinbase", "NO_DATA", f"No historical data available for {clean}")
        step = timedelta(days=MAX_CANDLES_PER_REQUEST - 1)
        points: list[HistoryPoint] = []
        window_start = start
        while window_start < end:
            window_end = min(window_start + step, end)
            points.extend(self._candle_window(clean, window_start, window_end, timeout_seconds or self.timeout_seconds))
            window_start = window_end
        if not points:
            raise ProviderError("coinbase", "NO_DATA", f"No historical data available for {clean}")
        return finalize_history(points)
