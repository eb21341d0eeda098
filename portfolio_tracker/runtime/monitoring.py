"""Structured tool-call logging."""

from __future__ import annotations

import json
import logging
import time

LOGGER = logging.getLogger("portfolio_tracker.tools")


def log_tool_event(
    tool: str,
    latency_ms: float,
    success: bool,
    portfolio_id: str | None = None,
    symbol: str | None = None,
    error_code: str | None = None,
) -> None:
    payload = {
        "tool": tool,
        "portfolio_id": portfolio_id,
        "symbol": symbol,
        "latency_ms": round(latency_ms, 3),
        "success": success,
        "timestamp": int(time.time()),
    }
    if error_code:
        payload["error_code"] = error_code
    LOGGER.info(json.dumps(payload, ensure_ascii=True))
