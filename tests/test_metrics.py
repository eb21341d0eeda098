import math
from datetime import datetime, timezone

from portfolio_tracker.portfolio.metrics import compute_metrics
from portfolio_tracker.portfolio.models import Asset

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def _asset(symbol: str, quantity: float, cost_basis: float, purchase_date: str) -> Asset:
    return Asset(
        id=symbol.lower(),
        symbol=symbol,
        name=symbol,
        quantity=quantity,
        cost_basis=cost_basis,
        purchase_date=purchase_date,
    )


def test_single_asset_value_cost_and_return() -> None:
    metrics = compute_metrics([_asset("AAPL", 10, 150.0, "2023-06-02")], {"AAPL": 200.0}, now=NOW)
    assert metrics.total_value == 2000.0
    assert metrics.total_cost == 1500.0
    assert math.isclose(metrics.total_return, 1 / 3)
    # 365 days held, so annualized equals total.
    assert math.isclose(metrics.annualized_return, 1 / 3)


def test_unpriced_assets_are_excluded_from_value_and_cost() -> None:
    assets = [_asset("AAPL", 10, 150.0, "2023-06-02"), _asset("ZZZZ", 5, 10.0, "2020-01-01")]
    metrics = compute_metrics(assets, {"AAPL": 200.0, "ZZZZ": 0.0}, now=NOW)
    assert metrics.total_value == 2000.0
    assert metrics.total_cost == 1500.0
    assert math.isclose(metrics.annualized_return, 1 / 3)


def test_no_prices_yields_zero_metrics() -> None:
    metrics = compute_metrics([_asset("AAPL", 10, 150.0, "2023-06-02")], {}, now=NOW)
    assert metrics.to_dict() == {
        "totalValue": 0.0,
        "totalCost": 0.0,
        "totalReturn": 0.0,
        "annualizedReturn": 0.0,
    }


def test_holding_period_uses_oldest_priced_purchase() -> None:
    assets = [_asset("AAPL", 1, 100.0, "2022-06-01"), _asset("MSFT", 1, 100.0, "2024-01-01")]
    metrics = compute_metrics(assets, {"AAPL": 121.0, "MSFT": 121.0}, now=NOW)
    assert math.isclose(metrics.total_return, 0.21)
    years = (NOW - datetime(2022, 6, 1, tzinfo=timezone.utc)).days / 365
    assert math.isclose(metrics.annualized_return, 1.21 ** (1 / years) - 1)


def test_same_day_purchase_counts_as_one_day() -> None:
    metrics = compute_metrics([_asset("AAPL", 1, 100.0, "2024-06-01")], {"AAPL": 100.0}, now=NOW)
    assert metrics.total_return == 0.0
    assert metrics.annualized_return == 0.0


def test_loss_gives_negative_returns() -> None:
    metrics = compute_metrics([_asset("AAPL", 2, 100.0, "2023-06-02")], {"AAPL": 50.0}, now=NOW)
    assert metrics.total_return == -0.5
    assert math.isclose(metrics.annualized_return, -0.5)
