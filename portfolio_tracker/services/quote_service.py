"""Quote-provider capability: routes stock/crypto lookups to their provider."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from datetime import date, datetime, timezone
from typing import Protocol, TypeVar

from portfolio_tracker.providers.coinbase import CoinbaseClient
from portfolio_tracker.providers.finnhub import FinnhubClient
from portfolio_tracker.providers.http import AUTH_MESSAGE, TIMEOUT_MESSAGE, ProviderError
from portfolio_tracker.providers.models import AssetClass, AssetPrice, HistoryPoint, ProviderName
from portfolio_tracker.services.base import ServiceContext, ServiceResult, failed_result, validate_symbol

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)
PROVIDER_BY_CLASS: dict[str, ProviderName] = {"stock": "finnhub", "crypto": "coinbase"}


class QuoteProvider(Protocol):
    def get_current_price(self, symbol: str, asset_class: AssetClass) -> AssetPrice: ...

    def get_history(
        self,
        symbol: str,
        from_date: date | datetime,
        to_date: date | datetime | None = None,
        asset_class: AssetClass = "stock",
    ) -> list[HistoryPoint]: ...


def backoff_seconds(attempt: int) -> float:
    return 0.25 * (2 ** (attempt - 1))


class QuoteService:
    """Cached, rate-limited access to Finnhub (stocks) and Coinbase (crypto)."""

    def __init__(self, ctx: ServiceContext) -> None:
        self.ctx = ctx

    def _finnhub(self) -> FinnhubClient | None:
        client = self.ctx.get_provider("finnhub")
        return client if isinstance(client, FinnhubClient) else None

    def _coinbase(self) -> CoinbaseClient | None:
        client = self.ctx.get_provider("coinbase")
        return client if isinstance(client, CoinbaseClient) else None

    def _client(self, asset_class: AssetClass) -> FinnhubClient | CoinbaseClient:
        provider = PROVIDER_BY_CLASS.get(asset_class)
        if provider is None:
            raise ValueError(f"Unsupported asset type: {asset_class}")
        client = self._finnhub() if asset_class == "stock" else self._coinbase()
        if client is None:
            raise ProviderError(provider, "AUTH", AUTH_MESSAGE)
        return client

    def _call(self, operation: str, symbol: str, provider: ProviderName, call: Callable[[], T], retries: int) -> T:
        attempts = max(0, retries) + 1
        for attempt in range(1, attempts + 1):
            started = time.perf_counter()
            try:
                self.ctx.rate_limiter.wait(provider)
                value = call()
            except ProviderError as error:
                elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
                LOGGER.warning(
                    "provider attempt failed: op=%s symbol=%s provider=%s code=%s status=%s attempt=%s latency_ms=%s",
                    operation,
                    symbol,
                    provider,
                    error.code,
                    error.status,
                    attempt,
                    elapsed_ms,
                )
                if not error.retriable or attempt >= attempts:
                    raise
                time.sleep(backoff_seconds(attempt))
                continue
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            LOGGER.info(
                "provider attempt complete: op=%s symbol=%s provider=%s attempt=%s latency_ms=%s",
                operation,
                symbol,
                provider,
                attempt,
                elapsed_ms,
            )
            return value
        raise ProviderError(provider, "UPSTREAM", f"{operation} failed for {symbol}")

    def get_current_price(self, symbol: str, asset_class: AssetClass = "stock") -> AssetPrice:
        clean = validate_symbol(symbol)
        cache_key = f"quote:{asset_class}:{clean}"
        cached = self.ctx.cache.get(cache_key)
        if isinstance(cached, AssetPrice):
            return cached
        client = self._client(asset_class)
        price = self._call(
            "get_quote",
            clean,
            PROVIDER_BY_CLASS[asset_class],
            lambda: client.get_quote(clean),
            self.ctx.quote_retries,
        )
        self.ctx.cache.set(cache_key, price, ttl_seconds=self.ctx.quote_ttl_seconds)
        return price

    def get_history(
        self,
        symbol: str,
        from_date: date | datetime,
        to_date: date | datetime | None = None,
        asset_class: AssetClass = "stock",
    ) -> list[HistoryPoint]:
        """Single-attempt daily history; callers own the retry policy."""
        clean = validate_symbol(symbol)
        end = to_date or datetime.now(timezone.utc)
        cache_key = f"history:{asset_class}:{clean}:{from_date.isoformat()}:{end.strftime('%Y-%m-%d')}"
        cached = self.ctx.cache.get(cache_key)
        if isinstance(cached, list):
            return list(cached)
        client = self._client(asset_class)
        points = self._call(
            "get_history",
            clean,
            PROVIDER_BY_CLASS[asset_class],
            lambda: client.get_candles(clean, from_date, end, timeout_seconds=self.ctx.history_timeout_seconds),
            0,
        )
        self.ctx.cache.set(cache_key, list(points), ttl_seconds=self.ctx.history_ttl_seconds)
        return points

    def get_quote(self, symbol: str, asset_class: AssetClass = "stock") -> ServiceResult[AssetPrice]:
        """Enveloped lookup for the asset form's inline price preview."""
        try:
            price = self.get_current_price(symbol, asset_class)
        except ProviderError as error:
            return failed_result(error)
        return ServiceResult(data=price, source=price.source, fetched_at=time.time())

    async def fetch_current_price(self, symbol: str, asset_class: AssetClass = "stock") -> AssetPrice:
        budget = self.ctx.request_timeout_seconds * (self.ctx.quote_retries + 1)
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.get_current_price, symbol, asset_class), budget)
        except asyncio.TimeoutError as error:
            raise ProviderError(PROVIDER_BY_CLASS.get(asset_class, "finnhub"), "TIMEOUT", TIMEOUT_MESSAGE) from error

    async def get_current_prices(self, holdings: Iterable[tuple[str, AssetClass]]) -> dict[str, float]:
        """Fan out one quote request per distinct holding; failed lookups are left out."""
        unique = list(dict.fromkeys((symbol, asset_class) for symbol, asset_class in holdings))
        if not unique:
            return {}
        results = await asyncio.gather(
            *(self.fetch_current_price(symbol, asset_class) for symbol, asset_class in unique),
            return_exceptions=True,
        )
        prices: dict[str, float] = {}
        for (symbol, asset_class), result in zip(unique, results):
            if isinstance(result, AssetPrice):
                prices[symbol] = result.price
            elif isinstance(result, (ProviderError, ValueError)):
                LOGGER.warning("quote unavailable: symbol=%s type=%s reason=%s", symbol, asset_class, result)
            elif isinstance(result, Exception):
                LOGGER.error("quote lookup unexpected failure: symbol=%s type=%s", symbol, asset_class, exc_info=result)
            elif isinstance(result, BaseException):
                raise result
        return prices

    def refresh(self) -> int:
        """Drop cached quotes and histories so the next read refetches."""
        return self.ctx.cache.invalidate("quote:") + self.ctx.cache.invalidate("history:")
