"""Portfolio valuation and return metrics."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone

from portfolio_tracker.portfolio.models import Asset, PortfolioMetrics

DAYS_PER_YEAR = 365


def _purchase_moment(asset: Asset) -> datetime | None:
    try:
        parsed = date.fromisoformat(asset.purchase_date[:10])
    except ValueError:
        return None
    return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


def compute_metrics(
    assets: Iterable[Asset],
    current_prices: Mapping[str, float],
    now: datetime | None = None,
) -> PortfolioMetrics:
    """Aggregate value, cost, total and annualized return over priced assets.

    Assets without a usable current price are left out of both value and cost.
    The holding period starts at the oldest purchase among priced assets and
    is never shorter than one day.
    """
    moment = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)

    total_value = 0.0
    total_cost = 0.0
    oldest_purchase = moment
    for asset in assets:
        price = current_prices.get(asset.symbol)
        if not price or price <= 0:
            continue
        total_value += price * asset.quantity
        total_cost += asset.cost_basis * asset.quantity
        purchased = _purchase_moment(asset)
        if purchased is not None and purchased < oldest_purchase:
            oldest_purchase = purchased

    total_return = (total_value - total_cost) / total_cost if total_cost > 0 else 0.0
    days_held = max((moment - oldest_purchase).days, 1)
    years_held = days_held / DAYS_PER_YEAR
    try:
        annualized_return = (1 + total_return) ** (1 / years_held) - 1
    except OverflowError:
        # Large gains over a few days compound past float range.
        annualized_return = float("inf")

    return PortfolioMetrics(
        total_value=total_value,
        total_cost=total_cost,
        total_return=total_return,
        annualized_return=annualized_return,
    )
