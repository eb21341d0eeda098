"""Typed portfolio models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

AssetType = Literal["stock", "crypto"]
Currency = Literal["USD", "EUR", "JPY", "TWD", "CNY"]

ASSET_TYPES = ("stock", "crypto")
CURRENCIES = ("USD", "EUR", "JPY", "TWD", "CNY")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class Asset:
    id: str
    symbol: str
    name: str
    quantity: float
    cost_basis: float
    purchase_date: str
    currency: Currency = "USD"
    type: AssetType = "stock"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "name": self.name,
            "quantity": self.quantity,
            "costBasis": self.cost_basis,
            "purchaseDate": self.purchase_date,
            "currency": self.currency,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Asset:
        # Stored and imported assets predate the type field in some exports.
        return cls(
            id=str(data.get("id") or ""),
            symbol=str(data.get("symbol") or ""),
            name=str(data.get("name") or ""),
            quantity=_as_float(data.get("quantity")),
            cost_basis=_as_float(data.get("costBasis")),
            purchase_date=str(data.get("purchaseDate") or ""),
            currency=data.get("currency") or "USD",
            type=data.get("type") or "stock",
        )


@dataclass(frozen=True)
class Portfolio:
    id: str
    name: str
    assets: tuple[Asset, ...] = ()
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def get_asset(self, asset_id: str) -> Asset | None:
        return next((asset for asset in self.assets if asset.id == asset_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "assets": [asset.to_dict() for asset in self.assets],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Portfolio:
        now = utc_now_iso()
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            assets=tuple(Asset.from_dict(item) for item in data.get("assets") or [] if isinstance(item, dict)),
            created_at=str(data.get("createdAt") or now),
            updated_at=str(data.get("updatedAt") or now),
        )


@dataclass(frozen=True)
class PortfolioMetrics:
    total_value: float = 0.0
    total_cost: float = 0.0
    total_return: float = 0.0
    annualized_return: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "totalValue": self.total_value,
            "totalCost": self.total_cost,
            "totalReturn": self.total_return,
            "annualizedReturn": self.annualized_return,
        }


@dataclass(frozen=True)
class PerformancePoint:
    date: str
    value: float
    cost: float
    return_pct: float

    def to_dict(self) -> dict[str, float | str]:
        return {"date": self.date, "value": self.value, "cost": self.cost, "returnPct": self.return_pct}


@dataclass
class ValidationIssue:
    field: str
    message: str
    code: str = "invalid_value"


class PortfolioValidationError(ValueError):
    """Raised when user input for a portfolio or asset is rejected."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        super().__init__("; ".join(issue.message for issue in issues) or "Invalid input.")
