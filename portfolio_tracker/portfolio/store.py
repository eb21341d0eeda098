"""Portfolio store: the single source of truth for portfolios and their assets.

All mutations replace records wholesale (``dataclasses.replace`` on frozen
dataclasses), so snapshots handed out earlier never change underneath their
holders. The selected portfolio is kept as an id and looked up fresh on
every read.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from portfolio_tracker.portfolio.models import Asset, Portfolio, utc_now_iso
from portfolio_tracker.portfolio.persistence import InMemoryStorage, PersistencePort

LOGGER = logging.getLogger(__name__)
UPDATABLE_FIELDS = {"name", "assets"}


@dataclass(frozen=True)
class StoreState:
    portfolios: tuple[Portfolio, ...]
    selected_portfolio: Portfolio | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "portfolios": [portfolio.to_dict() for portfolio in self.portfolios],
            "selectedPortfolio": self.selected_portfolio.to_dict() if self.selected_portfolio else None,
        }


class PortfolioStore:
    def __init__(self, persistence: PersistencePort | None = None, clock: Callable[[], str] = utc_now_iso) -> None:
        self._persistence = persistence if persistence is not None else InMemoryStorage()
        self._clock = clock
        self._portfolios: tuple[Portfolio, ...] = ()
        self._selected_id: str | None = None
        self._hydrate()

    def _hydrate(self) -> None:
        try:
            snapshot = self._persistence.load()
        except Exception:
            LOGGER.exception("portfolio hydration failed; starting empty")
            return
        if not snapshot:
            return
        portfolios: list[Portfolio] = []
        for index, item in enumerate(snapshot.get("portfolios") or []):
            try:
                if not isinstance(item, dict):
                    raise TypeError(f"expected object, got {type(item).__name__}")
                portfolios.append(Portfolio.from_dict(item))
            except (KeyError, TypeError, ValueError) as error:
                LOGGER.warning("skipping malformed stored portfolio: index=%s reason=%r", index, error)
        selected = snapshot.get("selectedPortfolio")
        self._portfolios = tuple(portfolios)
        self._selected_id = str(selected["id"]) if isinstance(selected, dict) and selected.get("id") else None
        LOGGER.info("portfolio store hydrated: portfolios=%s selected=%s", len(portfolios), self._selected_id)

    def _find(self, portfolio_id: str | None) -> Portfolio | None:
        if not portfolio_id:
            return None
        return next((portfolio for portfolio in self._portfolios if portfolio.id == portfolio_id), None)

    def _commit(self, portfolios: tuple[Portfolio, ...], selected_id: str | None) -> StoreState:
        self._portfolios = portfolios
        self._selected_id = selected_id if self._find(selected_id) else None
        state = self.state
        try:
            self._persistence.save(state.to_dict())
        except Exception:
            LOGGER.exception("portfolio snapshot persist failed; in-memory state kept")
        return state

    def _replace_portfolio(self, portfolio_id: str, change: Callable[[Portfolio], Portfolio]) -> StoreState:
        if self._find(portfolio_id) is None:
            return self.state
        now = self._clock()
        portfolios = tuple(
            replace(change(portfolio), updated_at=now) if portfolio.id == portfolio_id else portfolio
            for portfolio in self._portfolios
        )
        return self._commit(portfolios, portfolio_id)

    @property
    def state(self) -> StoreState:
        return StoreState(portfolios=self._portfolios, selected_portfolio=self.selected_portfolio)

    @property
    def portfolios(self) -> tuple[Portfolio, ...]:
        return self._portfolios

    @property
    def selected_portfolio(self) -> Portfolio | None:
        return self._find(self._selected_id)

    def get_portfolio(self, portfolio_id: str) -> Portfolio | None:
        return self._find(portfolio_id)

    def create_portfolio(self, name: str) -> Portfolio:
        now = self._clock()
        portfolio = Portfolio(id=str(uuid.uuid4()), name=name, assets=(), created_at=now, updated_at=now)
        self.add_portfolio(portfolio)
        return portfolio

    def add_portfolio(self, portfolio: Portfolio) -> StoreState:
        return self._commit(self._portfolios + (portfolio,), portfolio.id)

    def update_portfolio(self, portfolio_id: str, **fields: Any) -> StoreState:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update portfolio fields: {sorted(unknown)}")
        if "assets" in fields:
            fields["assets"] = tuple(fields["assets"])
        return self._replace_portfolio(portfolio_id, lambda portfolio: replace(portfolio, **fields))

    def delete_portfolio(self, portfolio_id: str) -> StoreState:
        if self._find(portfolio_id) is None:
            return self.state
        portfolios = tuple(portfolio for portfolio in self._portfolios if portfolio.id != portfolio_id)
        # Selection is cleared even when a different portfolio was selected.
        return self._commit(portfolios, None)

    def select_portfolio(self, portfolio_id: str) -> StoreState:
        return self._commit(self._portfolios, portfolio_id or None)

    def add_asset(self, portfolio_id: str, asset: Asset) -> StoreState:
        return self._replace_portfolio(
            portfolio_id,
            lambda portfolio: replace(portfolio, assets=portfolio.assets + (asset,)),
        )

    def remove_asset(self, portfolio_id: str, asset_id: str) -> StoreState:
        return self._replace_portfolio(
            portfolio_id,
            lambda portfolio: replace(portfolio, assets=tuple(a for a in portfolio.assets if a.id != asset_id)),
        )

    def update_asset(self, portfolio_id: str, asset: Asset) -> StoreState:
        return self._replace_portfolio(
            portfolio_id,
            lambda portfolio: replace(
                portfolio,
                assets=tuple(asset if existing.id == asset.id else existing for existing in portfolio.assets),
            ),
        )

    def import_portfolios(self, portfolios: Iterable[Portfolio]) -> StoreState:
        return self._commit(self._portfolios + tuple(portfolios), self._selected_id)
