"""Portfolio domain package: models, store, metrics, history and codec."""

from portfolio_tracker.portfolio.models import Asset, Portfolio, PortfolioMetrics
from portfolio_tracker.portfolio.portfolio_service import PortfolioService
from portfolio_tracker.portfolio.store import PortfolioStore

__all__ = ["Asset", "Portfolio", "PortfolioMetrics", "PortfolioService", "PortfolioStore"]
