"""Shared service orchestration helpers."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from portfolio_tracker.cache.ttl_cache import TTLCache
from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.utils.rate_limit import RateLimiterRegistry

SYMBOL_PATTERN = re.compile(r"^[A-Z0-9.]{1,10}$")
T = TypeVar("T")


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    retriable: bool = True
    provider: str | None = None


@dataclass
class ServiceResult(Generic[T]):
    data: T | None
    source: str | None = None
    warning: str | None = None
    error: ErrorEnvelope | None = None
    fetched_at: float | None = None


@dataclass
class ServiceContext:
    providers: dict[str, object]
    cache: TTLCache = field(default_factory=TTLCache)
    rate_limiter: RateLimiterRegistry = field(default_factory=lambda: RateLimiterRegistry(0.0))
    quote_ttl_seconds: int = 30
    history_ttl_seconds: int = 300
    request_timeout_seconds: float = 15.0
    history_timeout_seconds: float = 10.0
    quote_retries: int = 1
    history_retries: int = 2

    def get_provider(self, name: str) -> object | None:
        return self.providers.get(name)


def validate_symbol(symbol: str) -> str:
    clean = symbol.strip().upper()
    if not SYMBOL_PATTERN.match(clean):
        raise ValueError("Symbol must be 1-10 chars: A-Z, 0-9, dot.")
    return clean


def envelope_from_provider_error(error: ProviderError) -> ErrorEnvelope:
    return ErrorEnvelope(code=error.code, message=error.message, retriable=error.retriable, provider=error.provider)


def failed_result(error: ProviderError) -> ServiceResult[T]:
    return ServiceResult(data=None, error=envelope_from_provider_error(error), fetched_at=time.time())
