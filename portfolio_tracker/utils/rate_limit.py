"""Per-provider minimum-interval limiter."""

from __future__ import annotations

import time
from threading import Lock


class RateLimiterRegistry:
    """Spaces out calls to the same provider by a minimum interval.

    Finnhub's free tier allows 60 calls a minute, and a portfolio refresh
    fans out one quote request per asset at once.
    """

    def __init__(self, min_interval_seconds: float = 0.2) -> None:
        self.min_interval_seconds = max(0.0, min_interval_seconds)
        self._next_slot: dict[str, float] = {}
        self._lock = Lock()

    def reserve(self, provider: str) -> float:
        """Claim the next call slot for ``provider`` and return the delay until it."""
        if self.min_interval_seconds <= 0:
            return 0.0
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot.get(provider, now))
            self._next_slot[provider] = slot + self.min_interval_seconds
            return slot - now

    def wait(self, provider: str) -> None:
        delay = self.reserve(provider)
        if delay > 0:
            time.sleep(delay)
