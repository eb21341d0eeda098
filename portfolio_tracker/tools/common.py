"""Shared tool-layer helpers."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import asdict

from portfolio_tracker.portfolio.codec import ImportValidationError
from portfolio_tracker.portfolio.history import NoHistoryDataError
from portfolio_tracker.portfolio.models import PortfolioValidationError
from portfolio_tracker.portfolio.portfolio_service import PortfolioNotFoundError
from portfolio_tracker.providers.http import ProviderError
from portfolio_tracker.runtime.monitoring import log_tool_event
from portfolio_tracker.runtime.response import error_response
from portfolio_tracker.services.supersede import SupersededRequestError


def error_payload(error: Exception) -> tuple[str, str]:
    """Map a domain failure to ``(code, json payload)``."""
    if isinstance(error, PortfolioValidationError):
        return "INVALID_INPUT", error_response(
            "INVALID_INPUT", str(error), issues=[asdict(issue) for issue in error.issues]
        )
    if isinstance(error, ImportValidationError):
        return "INVALID_IMPORT", error_response("INVALID_IMPORT", str(error))
    if isinstance(error, PortfolioNotFoundError):
        return "NOT_FOUND", error_response("NOT_FOUND", str(error))
    if isinstance(error, NoHistoryDataError):
        return "NO_DATA", error_response("NO_DATA", error.message)
    if isinstance(error, SupersededRequestError):
        return "SUPERSEDED", error_response("SUPERSEDED", str(error))
    if isinstance(error, ProviderError):
        return error.code, error_response(error.code, error.message, provider=error.provider, retriable=error.retriable)
    if isinstance(error, ValueError):
        return "INVALID_INPUT", error_response("INVALID_INPUT", str(error))
    if isinstance(error, OSError):
        return "IO_ERROR", error_response("IO_ERROR", f"File operation failed: {error.strerror or error}")
    raise error


def run_tool(
    tool: str,
    call: Callable[[], str],
    portfolio_id: str | None = None,
    symbol: str | None = None,
) -> str:
    started = time.perf_counter()
    try:
        payload = call()
    except Exception as error:
        code, payload = error_payload(error)
        log_tool_event(tool, (time.perf_counter() - started) * 1000.0, False, portfolio_id, symbol, code)
        return payload
    log_tool_event(tool, (time.perf_counter() - started) * 1000.0, True, portfolio_id, symbol)
    return payload


async def run_tool_async(
    tool: str,
    call: Callable[[], Awaitable[str]],
    portfolio_id: str | None = None,
    symbol: str | None = None,
) -> str:
    started = time.perf_counter()
    try:
        payload = await call()
    except Exception as error:
        code, payload = error_payload(error)
        log_tool_event(tool, (time.perf_counter() - started) * 1000.0, False, portfolio_id, symbol, code)
        return payload
    log_tool_event(tool, (time.perf_counter() - started) * 1000.0, True, portfolio_id, symbol)
    return payload
