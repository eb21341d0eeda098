"""In-memory TTL cache for provider quotes and histories."""

from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock


@dataclass
class _Entry:
    value: object
    expires_at: float


class TTLCache:
    """Thread-safe TTL cache keyed by string.

    Keys are namespaced (``quote:stock:AAPL``) so a refresh can drop a
    whole family of entries with :meth:`invalidate`.
    """

    def __init__(self, default_ttl_seconds: int = 60) -> None:
        self.default_ttl_seconds = max(1, default_ttl_seconds)
        self._entries: dict[str, _Entry] = {}
        self._lock = Lock()

    def get(self, key: str) -> object | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at < time.monotonic():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: object, ttl_seconds: int | None = None) -> None:
        ttl = self.default_ttl_seconds if ttl_seconds is None else max(1, ttl_seconds)
        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=time.monotonic() + ttl)

    def invalidate(self, prefix: str = "") -> int:
        """Drop every entry whose key starts with ``prefix``; returns the count."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
