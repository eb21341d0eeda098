"""Finnhub API client for equity quotes and daily candles."""

from __future__ import annotations

import math
from datetime import date, datetime, timezone

from portfolio_tracker.providers.http import AUTH_MESSAGE, RATE_LIMIT_MESSAGE, ProviderError, fetch_json
from portfolio_tracker.providers.models import AssetPrice, HistoryPoint, finalize_history

FINNHUB_BASE_URL = "https://finnhub.io/api/v1"
CANDLE_FIELDS = ("t", "o", "h", "l", "c", "v")


def _to_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_unix(value: date | datetime) -> int:
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    else:
        moment = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return int(moment.timestamp())


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FinnhubClient:
    """Thin wrapper around the Finnhub endpoints used for equities."""

    def __init__(self, api_key: str, timeout_seconds: float = 15.0) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def _request(self, endpoint: str, query: dict[str, str | int], subject: str, timeout_seconds: float | None = None) -> dict:
        params = dict(query)
        params["token"] = self.api_key
        data = fetch_json(
            f"{FINNHUB_BASE_URL}{endpoint}",
            provider="finnhub",
            timeout_seconds=timeout_seconds or self.timeout_seconds,
            params=params,
            subject=subject,
        )
        if isinstance(data, dict) and data.get("error"):
            text = str(data["error"])
            lower = text.lower()
            if "limit" in lower:
                raise ProviderError("finnhub", "RATE_LIMIT", RATE_LIMIT_MESSAGE)
            if "token" in lower or "key" in lower or "auth" in lower or "access" in lower:
                raise ProviderError("finnhub", "AUTH", AUTH_MESSAGE)
            raise ProviderError("finnhub", "UPSTREAM", text)
        if not isinstance(data, dict):
            raise ProviderError("finnhub", "BAD_RESPONSE", f"Invalid data received for {subject}")
        return data

    def get_quote(self, symbol: str) -> AssetPrice:
        clean = symbol.strip().upper()
        data = self._request("/quote", {"symbol": clean}, subject=f"quote for {clean}")
        price = _to_float(data.get("c"))
        # Finnhub answers unknown tickers with an all-zero quote instead of a 404.
        if price is None or price <= 0:
            raise ProviderError("finnhub", "NOT_FOUND", f"No data found for symbol: {clean}")
        return AssetPrice(symbol=clean, price=price, currency="USD", timestamp=_iso_now(), source="finnhub")

    def get_candles(
        self,
        symbol: str,
        from_date: date | datetime,
        to_date: date | datetime,
        timeout_seconds: float | None = None,
    ) -> list[HistoryPoint]:
        clean = symbol.strip().upper()
        data = self._request(
            "/stock/candle",
            {"symbol": clean, "resolution": "D", "from": _to_unix(from_date), "to": _to_unix(to_date)},
            subject=f"historical data for {clean}",
            timeout_seconds=timeout_seconds,
        )
        if data.get("s") == "no_data":
            raise ProviderError("finnhub", "NO_DATA", f"No historical data available for {clean}")
        timestamps = data.get("t")
        if data.get("s") != "ok" or not isinstance(timestamps, list) or not timestamps:
            raise ProviderError("finnhub", "BAD_RESPONSE", f"Invalid data received for {clean}")
        length = len(timestamps)
        if not all(isinstance(data.get(key), list) and len(data[key]) == length for key in CANDLE_FIELDS):
            raise ProviderError("finnhub", "BAD_RESPONSE", f"Incomplete data received for {clean}")

        points: list[HistoryPoint] = []
        for idx in range(length):
            ts = _to_float(data["t"][idx])
            values = [_to_float(data[key][idx]) for key in ("o", "h", "l", "c", "v")]
            if ts is None or any(value is None for value in values):
                continue
            open_value, high, low, close, volume = values
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
        if not points:
            raise ProviderError("finnhub", "NO_DATA", f"No valid historical data found for {clean}")
        return finalize_history(points)
