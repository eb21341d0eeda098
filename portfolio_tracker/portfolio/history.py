"""Portfolio-level performance history built from per-asset daily closes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import date, datetime

import pandas as pd

from portfolio_tracker.portfolio.models import Asset, PerformancePoint
from portfolio_tracker.providers.http import TIMEOUT_MESSAGE, ProviderError
from portfolio_tracker.providers.models import HistoryPoint
from portfolio_tracker.services.quote_service import PROVIDER_BY_CLASS, QuoteProvider, backoff_seconds

LOGGER = logging.getLogger(__name__)
NO_DATA_MESSAGE = "No historical data available for the selected time range"
HISTORY_COLUMNS = ["date", "value", "cost"]


class NoHistoryDataError(Exception):
    """No asset produced any daily point inside the requested range."""

    def __init__(self, message: str = NO_DATA_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


async def _fetch_asset_history(
    asset: Asset,
    from_date: date | datetime,
    to_date: date | datetime | None,
    quote_provider: QuoteProvider,
    timeout_seconds: float,
    retries: int,
) -> list[HistoryPoint]:
    attempts = max(0, retries) + 1
    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(quote_provider.get_history, asset.symbol, from_date, to_date, asset.type),
                timeout_seconds,
            )
        except asyncio.TimeoutError:
            failure = ProviderError(PROVIDER_BY_CLASS.get(asset.type, "finnhub"), "TIMEOUT", TIMEOUT_MESSAGE)
        except ProviderError as error:
            failure = error
        if not failure.retriable or attempt >= attempts:
            raise failure
        await asyncio.sleep(backoff_seconds(attempt))
    return []


async def _settled_history(
    asset: Asset,
    from_date: date | datetime,
    to_date: date | datetime | None,
    quote_provider: QuoteProvider,
    timeout_seconds: float,
    retries: int,
) -> pd.DataFrame:
    try:
        points = await _fetch_asset_history(asset, from_date, to_date, quote_provider, timeout_seconds, retries)
    except (ProviderError, ValueError) as error:
        LOGGER.warning("history unavailable: symbol=%s type=%s reason=%s", asset.symbol, asset.type, error)
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    except Exception:
        LOGGER.exception("history fetch unexpected failure: symbol=%s type=%s", asset.symbol, asset.type)
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    if not points:
        return pd.DataFrame(columns=HISTORY_COLUMNS)
    frame = pd.DataFrame({"date": [point.date for point in points], "close": [point.close for point in points]})
    frame["value"] = frame["close"] * asset.quantity
    frame["cost"] = asset.cost_basis * asset.quantity
    return frame[HISTORY_COLUMNS]


def merge_histories(frames: Sequence[pd.DataFrame]) -> list[PerformancePoint]:
    """Sum value and cost per calendar date across assets, ascending by date."""
    non_empty = [frame for frame in frames if not frame.empty]
    if not non_empty:
        return []
    combined = pd.concat(non_empty, ignore_index=True)
    totals = combined.groupby("date", sort=True)[["value", "cost"]].sum()
    points: list[PerformancePoint] = []
    for day, row in totals.iterrows():
        value = float(row["value"])
        cost = float(row["cost"])
        return_pct = ((value - cost) / cost) * 100 if cost > 0 else 0.0
        points.append(PerformancePoint(date=str(day), value=value, cost=cost, return_pct=return_pct))
    return points


async def aggregate_history(
    assets: Sequence[Asset],
    from_date: date | datetime,
    quote_provider: QuoteProvider,
    to_date: date | datetime | None = None,
    timeout_seconds: float = 10.0,
    retries: int = 2,
) -> list[PerformancePoint]:
    """Fan out one history request per asset and fold them into one return curve.

    A failing asset contributes nothing; the rest still chart. Dates are
    matched exactly with no fill, so a day missing from one market's calendar
    carries only the assets that traded on it.
    """
    frames = await asyncio.gather(
        *(_settled_history(asset, from_date, to_date, quote_provider, timeout_seconds, retries) for asset in assets)
    )
    points = merge_histories(frames)
    if not points:
        raise NoHistoryDataError()
    return points
