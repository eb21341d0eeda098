"""Portfolio-domain MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from mcp.server.fastmcp import FastMCP

from portfolio_tracker.runtime.response import result_response, success_response
from portfolio_tracker.tools.common import run_tool, run_tool_async

if TYPE_CHECKING:
    from portfolio_tracker.tools.registry import ToolServices


def register_portfolio_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Create a new, empty portfolio and select it.")
    def create_portfolio(name: str) -> str:
        return run_tool("create_portfolio", lambda: success_response(services.portfolio.create_portfolio(name)))

    @mcp.tool(description="List portfolios with asset counts and the current selection.")
    def list_portfolios() -> str:
        return run_tool("list_portfolios", lambda: success_response(services.portfolio.list_portfolios()))

    @mcp.tool(description="Select the portfolio that metrics and history default to.")
    def select_portfolio(portfolio_id: str) -> str:
        return run_tool(
            "select_portfolio",
            lambda: success_response(services.portfolio.select_portfolio(portfolio_id)),
            portfolio_id=portfolio_id,
        )

    @mcp.tool(description="Rename an existing portfolio.")
    def rename_portfolio(portfolio_id: str, name: str) -> str:
        return run_tool(
            "rename_portfolio",
            lambda: success_response(services.portfolio.rename_portfolio(portfolio_id, name)),
            portfolio_id=portfolio_id,
        )

    @mcp.tool(description="Delete a portfolio and all of its assets. Clears the current selection.")
    def delete_portfolio(portfolio_id: str) -> str:
        def call() -> str:
            services.portfolio.delete_portfolio(portfolio_id)
            return success_response({"deleted": portfolio_id})

        return run_tool("delete_portfolio", call, portfolio_id=portfolio_id)

    @mcp.tool(
        description=(
            "Add a stock or crypto holding. purchase_date is YYYY-MM-DD and may not be in the future; "
            "asset_type is 'stock' or 'crypto'."
        )
    )
    def add_asset(
        portfolio_id: str,
        symbol: str,
        name: str,
        quantity: float,
        cost_basis: float,
        purchase_date: str,
        currency: str = "USD",
        asset_type: str = "stock",
    ) -> str:
        return run_tool(
            "add_asset",
            lambda: success_response(
                services.portfolio.add_asset(
                    portfolio_id,
                    symbol,
                    name,
                    quantity,
                    cost_basis,
                    purchase_date,
                    currency=currency,
                    asset_type=asset_type,
                )
            ),
            portfolio_id=portfolio_id,
            symbol=symbol,
        )

    @mcp.tool(description="Edit an existing holding. Omitted fields keep their current values.")
    def update_asset(
        portfolio_id: str,
        asset_id: str,
        symbol: str = "",
        name: str = "",
        quantity: float | None = None,
        cost_basis: float | None = None,
        purchase_date: str = "",
        currency: str = "",
    ) -> str:
        changes: dict[str, Any] = {
            "symbol": symbol or None,
            "name": name or None,
            "quantity": quantity,
            "cost_basis": cost_basis,
            "purchase_date": purchase_date or None,
            "currency": currency or None,
        }
        return run_tool(
            "update_asset",
            lambda: success_response(services.portfolio.update_asset(portfolio_id, asset_id, **changes)),
            portfolio_id=portfolio_id,
            symbol=symbol or None,
        )

    @mcp.tool(description="Remove a holding from a portfolio.")
    def remove_asset(portfolio_id: str, asset_id: str) -> str:
        return run_tool(
            "remove_asset",
            lambda: success_response(services.portfolio.remove_asset(portfolio_id, asset_id)),
            portfolio_id=portfolio_id,
        )

    @mcp.tool(description="Look up the current price for a stock (Finnhub) or crypto (Coinbase) symbol.")
    async def lookup_quote(symbol: str, asset_type: str = "stock") -> str:
        async def call() -> str:
            return result_response(await services.portfolio.lookup_quote(symbol, asset_type))

        return await run_tool_async("lookup_quote", call, symbol=symbol)

    @mcp.tool(
        description=(
            "Total value, cost, total return and annualized return at live prices. "
            "Defaults to the selected portfolio."
        )
    )
    async def portfolio_metrics(portfolio_id: str = "") -> str:
        async def call() -> str:
            portfolio = services.portfolio.get_portfolio(portfolio_id or None)
            metrics, prices = await services.portfolio.portfolio_metrics(portfolio.id)
            unpriced = sorted({asset.symbol for asset in portfolio.assets if asset.symbol not in prices})
            return success_response(metrics, portfolio_id=portfolio.id, prices=prices, unpriced=unpriced)

        return await run_tool_async("portfolio_metrics", call, portfolio_id=portfolio_id or None)

    @mcp.tool(
        description=(
            "Daily portfolio value, cost and return percentage over 1M, 3M, 6M, 1Y or ALL (5 years). "
            "Defaults to the selected portfolio."
        )
    )
    async def portfolio_history(time_range: str = "6M", portfolio_id: str = "") -> str:
        async def call() -> str:
            points = await services.portfolio.portfolio_history(time_range, portfolio_id or None)
            return success_response(points, time_range=time_range.strip().upper())

        return await run_tool_async("portfolio_history", call, portfolio_id=portfolio_id or None)

    @mcp.tool(description="Discard cached quotes and histories so the next request refetches them.")
    def refresh_market_data() -> str:
        return run_tool(
            "refresh_market_data",
            lambda: success_response({"invalidated": services.portfolio.refresh_market_data()}),
        )

    @mcp.tool(description="Write every portfolio to portfolio-export-YYYY-MM-DD.json inside the given directory.")
    def export_portfolios(directory: str) -> str:
        return run_tool(
            "export_portfolios",
            lambda: success_response(
                {"path": services.portfolio.export_to_file(directory), "count": len(services.portfolio.store.portfolios)}
            ),
        )

    @mcp.tool(description="Append the portfolios from an export file to the existing ones.")
    def import_portfolios(file_path: str) -> str:
        def call() -> str:
            imported = services.portfolio.import_from_file(file_path)
            return success_response({"imported": len(imported), "portfolios": [item.id for item in imported]})

        return run_tool("import_portfolios", call)
