"""Latest-request-wins bookkeeping for refetchable views."""

from __future__ import annotations

import threading


class SupersededRequestError(Exception):
    """A newer request for the same view started before this one resolved."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Request for {key} was superseded by a newer one.")
        self.key = key


class RequestGenerations:
    """Hands out a token per request key; only the newest token is current.

    A caller takes a token before fetching and checks it before publishing the
    result, so a slow response for an old symbol or time range is dropped
    instead of overwriting a newer one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: dict[str, int] = {}

    def begin(self, key: str) -> int:
        with self._lock:
            token = self._latest.get(key, 0) + 1
            self._latest[key] = token
            return token

    def is_current(self, key: str, token: int) -> bool:
        with self._lock:
            return self._latest.get(key) == token

    def ensure_current(self, key: str, token: int) -> None:
        if not self.is_current(key, token):
            raise SupersededRequestError(key)
