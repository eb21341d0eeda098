"""HTTP utilities and normalized provider errors."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

import requests
from requests.adapters import HTTPAdapter

from portfolio_tracker.providers.models import ProviderName

ProviderErrorCode = Literal[
    "NOT_FOUND",
    "AUTH",
    "RATE_LIMIT",
    "NETWORK",
    "TIMEOUT",
    "NO_DATA",
    "UPSTREAM",
    "BAD_RESPONSE",
]
RETRIABLE_CODES = {"RATE_LIMIT", "NETWORK", "TIMEOUT", "UPSTREAM", "BAD_RESPONSE"}

AUTH_MESSAGE = "API authentication failed. Please try again later."
RATE_LIMIT_MESSAGE = "API rate limit exceeded. Please try again in a minute."
TIMEOUT_MESSAGE = "Request timed out. Please try again."

_SESSION = requests.Session()
_SESSION.mount("https://", HTTPAdapter(pool_connections=10, pool_maxsize=20))
_SESSION.mount("http://", HTTPAdapter(pool_connections=10, pool_maxsize=20))


@dataclass
class ProviderError(Exception):
    provider: ProviderName
    code: ProviderErrorCode
    message: str
    status: int | None = None

    def __str__(self) -> str:
        return self.message

    @property
    def retriable(self) -> bool:
        return self.code in RETRIABLE_CODES


def map_status_to_code(status: int) -> ProviderErrorCode:
    if status in {401, 403}:
        return "AUTH"
    if status == 404:
        return "NOT_FOUND"
    if status == 429:
        return "RATE_LIMIT"
    return "UPSTREAM"


def _status_message(code: ProviderErrorCode, status: int, subject: str) -> str:
    if code == "AUTH":
        return AUTH_MESSAGE
    if code == "RATE_LIMIT":
        return RATE_LIMIT_MESSAGE
    if code == "NOT_FOUND":
        return f"{subject} not found"
    return f"Failed to fetch {subject}. Please try again later. (status {status})"


def fetch_json(
    url: str,
    provider: ProviderName,
    timeout_seconds: float = 15.0,
    params: dict[str, str | int] | None = None,
    headers: dict[str, str] | None = None,
    subject: str = "data",
) -> Any:
    """Fetch JSON once, mapping transport and status failures to ProviderError."""
    try:
        response = _SESSION.get(url, params=params, timeout=timeout_seconds, headers=headers)
    except requests.Timeout as error:
        raise ProviderError(provider, "TIMEOUT", TIMEOUT_MESSAGE) from error
    except requests.RequestException as error:
        raise ProviderError(
            provider,
            "NETWORK",
            f"Failed to fetch {subject}. Please try again later.",
        ) from error

    if not response.ok:
        code = map_status_to_code(response.status_code)
        raise ProviderError(provider, code, _status_message(code, response.status_code, subject), response.status_code)

    raw = response.text or ""
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except json.JSONDecodeError as error:
        raise ProviderError(
            provider,
            "BAD_RESPONSE",
            f"Invalid data received for {subject}",
            response.status_code,
        ) from error
