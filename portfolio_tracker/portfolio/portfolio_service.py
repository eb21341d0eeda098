"""Portfolio orchestration service used by the tool layer."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

import pandas as pd

from portfolio_tracker.portfolio.codec import export_filename, export_portfolios, import_portfolios
from portfolio_tracker.portfolio.history import aggregate_history
from portfolio_tracker.portfolio.metrics import compute_metrics
from portfolio_tracker.portfolio.models import (
    Asset,
    PerformancePoint,
    Portfolio,
    PortfolioMetrics,
    PortfolioValidationError,
    ValidationIssue,
)
from portfolio_tracker.portfolio.store import PortfolioStore
from portfolio_tracker.portfolio.validation import build_asset, validate_portfolio_name
from portfolio_tracker.providers.models import AssetPrice
from portfolio_tracker.services.base import ServiceResult
from portfolio_tracker.services.quote_service import QuoteService
from portfolio_tracker.services.supersede import RequestGenerations

LOGGER = logging.getLogger(__name__)
TIME_RANGES: dict[str, pd.DateOffset] = {
    "1M": pd.DateOffset(months=1),
    "3M": pd.DateOffset(months=3),
    "6M": pd.DateOffset(months=6),
    "1Y": pd.DateOffset(years=1),
    "ALL": pd.DateOffset(years=5),
}
QUOTE_LOOKUP_KEY = "quote-lookup"


class PortfolioNotFoundError(LookupError):
    def __init__(self, portfolio_id: str | None) -> None:
        message = f"Portfolio not found: {portfolio_id}" if portfolio_id else "No portfolio is selected."
        super().__init__(message)
        self.portfolio_id = portfolio_id


def resolve_range_start(time_range: str, now: datetime | None = None) -> datetime:
    """Start of day, ``time_range`` before ``now``."""
    offset = TIME_RANGES.get(time_range.strip().upper())
    if offset is None:
        raise ValueError(f"Time range must be one of: {', '.join(TIME_RANGES)}.")
    moment = pd.Timestamp(now or datetime.now(timezone.utc))
    return (moment - offset).normalize().to_pydatetime()


class PortfolioService:
    def __init__(
        self,
        store: PortfolioStore,
        quotes: QuoteService,
        history_timeout_seconds: float = 10.0,
        history_retries: int = 2,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.quotes = quotes
        self.history_timeout_seconds = history_timeout_seconds
        self.history_retries = history_retries
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._generations = RequestGenerations()

    def _resolve(self, portfolio_id: str | None = None) -> Portfolio:
        portfolio = self.store.get_portfolio(portfolio_id) if portfolio_id else self.store.selected_portfolio
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def list_portfolios(self) -> list[dict[str, Any]]:
        selected = self.store.selected_portfolio
        return [
            {
                "id": portfolio.id,
                "name": portfolio.name,
                "assetCount": len(portfolio.assets),
                "createdAt": portfolio.created_at,
                "updatedAt": portfolio.updated_at,
                "selected": selected is not None and selected.id == portfolio.id,
            }
            for portfolio in self.store.portfolios
        ]

    def get_portfolio(self, portfolio_id: str | None = None) -> Portfolio:
        return self._resolve(portfolio_id)

    def create_portfolio(self, name: str) -> Portfolio:
        return self.store.create_portfolio(validate_portfolio_name(name))

    def rename_portfolio(self, portfolio_id: str, name: str) -> Portfolio:
        clean = validate_portfolio_name(name)
        self._resolve(portfolio_id)
        self.store.update_portfolio(portfolio_id, name=clean)
        return self._resolve(portfolio_id)

    def delete_portfolio(self, portfolio_id: str) -> None:
        self._resolve(portfolio_id)
        self.store.delete_portfolio(portfolio_id)

    def select_portfolio(self, portfolio_id: str) -> Portfolio | None:
        return self.store.select_portfolio(portfolio_id).selected_portfolio

    def add_asset(
        self,
        portfolio_id: str,
        symbol: str,
        name: str,
        quantity: object,
        cost_basis: object,
        purchase_date: object,
        currency: str = "USD",
        asset_type: str = "stock",
    ) -> Asset:
        self._resolve(portfolio_id)
        asset = build_asset(
            symbol,
            name,
            quantity,
            cost_basis,
            purchase_date,
            currency=currency,
            asset_type=asset_type,
            today=self._clock().date(),
        )
        self.store.add_asset(portfolio_id, asset)
        LOGGER.info("asset added: portfolio=%s symbol=%s type=%s", portfolio_id, asset.symbol, asset.type)
        return asset

    def update_asset(self, portfolio_id: str, asset_id: str, **changes: Any) -> Asset:
        """Apply form edits to an existing asset; its type cannot change."""
        existing = self._resolve(portfolio_id).get_asset(asset_id)
        if existing is None:
            raise PortfolioValidationError(
                [ValidationIssue(field="id", code="unknown_asset", message=f"Asset not found: {asset_id}")]
            )
        asset_type = changes.pop("asset_type", None) or existing.type
        if asset_type != existing.type:
            raise PortfolioValidationError(
                [
                    ValidationIssue(
                        field="type",
                        code="immutable_type",
                        message="Asset type cannot change; remove the asset and add a new one.",
                    )
                ]
            )

        def pick(key: str, current: Any) -> Any:
            value = changes.get(key)
            return current if value is None else value

        asset = build_asset(
            pick("symbol", existing.symbol),
            pick("name", existing.name),
            pick("quantity", existing.quantity),
            pick("cost_basis", existing.cost_basis),
            pick("purchase_date", existing.purchase_date),
            currency=pick("currency", existing.currency),
            asset_type=existing.type,
            asset_id=existing.id,
            today=self._clock().date(),
        )
        self.store.update_asset(portfolio_id, asset)
        return asset

    def remove_asset(self, portfolio_id: str, asset_id: str) -> Portfolio:
        self._resolve(portfolio_id)
        self.store.remove_asset(portfolio_id, asset_id)
        return self._resolve(portfolio_id)

    async def lookup_quote(self, symbol: str, asset_type: str = "stock") -> ServiceResult[AssetPrice]:
        """Form-preview lookup; a lookup overtaken by a newer one is discarded."""
        token = self._generations.begin(QUOTE_LOOKUP_KEY)
        result = await asyncio.to_thread(self.quotes.get_quote, symbol, asset_type)
        self._generations.ensure_current(QUOTE_LOOKUP_KEY, token)
        return result

    async def portfolio_metrics(self, portfolio_id: str | None = None) -> tuple[PortfolioMetrics, dict[str, float]]:
        portfolio = self._resolve(portfolio_id)
        if not portfolio.assets:
            return PortfolioMetrics(), {}
        prices = await self.quotes.get_current_prices((asset.symbol, asset.type) for asset in portfolio.assets)
        return compute_metrics(portfolio.assets, prices, now=self._clock()), prices

    async def portfolio_history(self, time_range: str = "6M", portfolio_id: str | None = None) -> list[PerformancePoint]:
        portfolio = self._resolve(portfolio_id)
        from_date = resolve_range_start(time_range, self._clock())
        if not portfolio.assets:
            return []
        key = f"history:{portfolio.id}"
        token = self._generations.begin(key)
        points = await aggregate_history(
            portfolio.assets,
            from_date,
            self.quotes,
            timeout_seconds=self.history_timeout_seconds,
            retries=self.history_retries,
        )
        self._generations.ensure_current(key, token)
        return points

    def refresh_market_data(self) -> int:
        dropped = self.quotes.refresh()
        LOGGER.info("market data cache cleared: entries=%s", dropped)
        return dropped

    def export_text(self) -> str:
        return export_portfolios(self.store.portfolios, now=self._clock())

    def export_to_file(self, directory: str) -> str:
        target_dir = os.path.abspath(os.path.expanduser(directory))
        os.makedirs(target_dir, exist_ok=True)
        path = os.path.join(target_dir, export_filename(self._clock()))
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(self.export_text())
        LOGGER.info("portfolios exported: path=%s count=%s", path, len(self.store.portfolios))
        return path

    def import_text(self, raw_text: str) -> list[Portfolio]:
        portfolios = import_portfolios(raw_text)
        self.store.import_portfolios(portfolios)
        LOGGER.info("portfolios imported: count=%s", len(portfolios))
        return portfolios

    def import_from_file(self, file_path: str) -> list[Portfolio]:
        with open(os.path.abspath(os.path.expanduser(file_path)), encoding="utf-8") as handle:
            return self.import_text(handle.read())
