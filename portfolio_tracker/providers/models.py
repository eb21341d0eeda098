"""Normalized quote models shared across providers and services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ProviderName = Literal["finnhub", "coinbase"]
AssetClass = Literal["stock", "crypto"]


@dataclass(frozen=True)
class AssetPrice:
    symbol: str
    price: float
    currency: str
    timestamp: str
    source: ProviderName = "finnhub"


@dataclass(frozen=True)
class HistoryPoint:
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: float


def finalize_history(points: list[HistoryPoint]) -> list[HistoryPoint]:
    """Deduplicate by date (last row wins) and sort ascending."""
    by_date: dict[str, HistoryPoint] = {}
    for point in points:
        by_date[point.date] = point
    return [by_date[key] for key in sorted(by_date)]
