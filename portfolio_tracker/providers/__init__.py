"""Quote provider clients and normalized quote models."""

from portfolio_tracker.providers.coinbase import CoinbaseClient
from portfolio_tracker.providers.finnhub import FinnhubClient
from portfolio_tracker.providers.http import ProviderError

__all__ = [
    "CoinbaseClient",
    "FinnhubClient",
    "ProviderError",
]
