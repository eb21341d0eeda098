"""Asset and portfolio input validation."""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime

from portfolio_tracker.portfolio.models import (
    ASSET_TYPES,
    CURRENCIES,
    Asset,
    PortfolioValidationError,
    ValidationIssue,
)
from portfolio_tracker.services.base import validate_symbol

MIN_QUANTITY = 0.000001
MIN_COST_BASIS = 0.01
MAX_NAME_LENGTH = 100


def _as_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_date(value: object) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def validate_portfolio_name(name: str) -> str:
    clean = (name or "").strip()
    if not clean:
        raise PortfolioValidationError(
            [ValidationIssue(field="name", code="missing_name", message="Portfolio name is required.")]
        )
    return clean


def validate_asset_fields(
    symbol: str,
    name: str,
    quantity: object,
    cost_basis: object,
    purchase_date: object,
    currency: str = "USD",
    asset_type: str = "stock",
    today: date | None = None,
) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    try:
        validate_symbol(symbol or "")
    except ValueError:
        issues.append(
            ValidationIssue(field="symbol", code="invalid_symbol", message=f"Invalid symbol: {(symbol or '').strip()!r}")
        )

    clean_name = (name or "").strip()
    if not clean_name or len(clean_name) > MAX_NAME_LENGTH:
        issues.append(
            ValidationIssue(field="name", code="invalid_name", message="Name must be 1-100 characters.")
        )

    qty = _as_number(quantity)
    if qty is None or qty < MIN_QUANTITY:
        issues.append(
            ValidationIssue(
                field="quantity",
                code="invalid_quantity",
                message=f"Quantity must be a number of at least {MIN_QUANTITY:f}.",
            )
        )

    cost = _as_number(cost_basis)
    if cost is None or cost < MIN_COST_BASIS:
        issues.append(
            ValidationIssue(
                field="costBasis",
                code="invalid_cost_basis",
                message=f"Cost basis must be a number of at least {MIN_COST_BASIS}.",
            )
        )

    parsed = _parse_date(purchase_date)
    if parsed is None:
        issues.append(
            ValidationIssue(field="purchaseDate", code="invalid_date", message="Purchase date must be YYYY-MM-DD.")
        )
    elif parsed > (today or date.today()):
        issues.append(
            ValidationIssue(field="purchaseDate", code="future_date", message="Purchase date cannot be in the future.")
        )

    if currency not in CURRENCIES:
        issues.append(
            ValidationIssue(field="currency", code="invalid_currency", message=f"Currency must be one of {list(CURRENCIES)}.")
        )
    if asset_type not in ASSET_TYPES:
        issues.append(
            ValidationIssue(field="type", code="invalid_type", message=f"Type must be one of {list(ASSET_TYPES)}.")
        )
    return issues


def build_asset(
    symbol: str,
    name: str,
    quantity: object,
    cost_basis: object,
    purchase_date: object,
    currency: str = "USD",
    asset_type: str = "stock",
    asset_id: str | None = None,
    today: date | None = None,
) -> Asset:
    """Validate raw form input and return a normalized Asset."""
    currency = (currency or "USD").strip().upper()
    asset_type = (asset_type or "stock").strip().lower()
    issues = validate_asset_fields(symbol, name, quantity, cost_basis, purchase_date, currency, asset_type, today)
    if issues:
        raise PortfolioValidationError(issues)
    return Asset(
        id=asset_id or str(uuid.uuid4()),
        symbol=validate_symbol(symbol),
        name=name.strip(),
        quantity=float(quantity),  # type: ignore[arg-type]
        cost_basis=float(cost_basis),  # type: ignore[arg-type]
        purchase_date=_parse_date(purchase_date).isoformat(),  # type: ignore[union-attr]
        currency=currency,  # type: ignore[arg-type]
        type=asset_type,  # type: ignore[arg-type]
    )
