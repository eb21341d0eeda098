"""Versioned JSON envelope for exporting and importing portfolios."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from portfolio_tracker.portfolio.models import Portfolio

LOGGER = logging.getLogger(__name__)
EXPORT_VERSION = "1.0"


class ImportValidationError(ValueError):
    """The import payload is not a usable portfolio envelope."""


def export_payload(portfolios: Iterable[Portfolio], now: datetime | None = None) -> dict[str, Any]:
    moment = now or datetime.now(timezone.utc)
    return {
        "version": EXPORT_VERSION,
        "exportDate": moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        "portfolios": [portfolio.to_dict() for portfolio in portfolios],
    }


def export_portfolios(portfolios: Iterable[Portfolio], now: datetime | None = None) -> str:
    return json.dumps(export_payload(portfolios, now), indent=2, ensure_ascii=False)


def export_filename(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"portfolio-export-{moment.strftime('%Y-%m-%d')}.json"


def _is_valid_portfolio(item: Any) -> bool:
    return (
        isinstance(item, dict)
        and bool(item.get("id"))
        and bool(item.get("name"))
        and isinstance(item.get("assets"), list)
    )


def import_portfolios(raw_text: str) -> list[Portfolio]:
    """Parse and validate an export envelope; nothing is returned unless every portfolio passes."""
    try:
        data = json.loads(raw_text)
    except (TypeError, ValueError) as error:
        raise ImportValidationError("Invalid JSON") from error

    items = data.get("portfolios") if isinstance(data, dict) else None
    if not isinstance(items, list):
        raise ImportValidationError("Invalid portfolio data format")
    if not all(_is_valid_portfolio(item) for item in items):
        raise ImportValidationError("Invalid portfolio structure")

    version = data.get("version")
    if version != EXPORT_VERSION:
        LOGGER.debug("importing envelope with unrecognized version: version=%s", version)
    return [Portfolio.from_dict(item) for item in items]
