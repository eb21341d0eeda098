"""Tool registration wiring."""

from __future__ import annotations

from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from portfolio_tracker.portfolio.portfolio_service import PortfolioService
from portfolio_tracker.tools.portfolio_tools import register_portfolio_tools


@dataclass
class ToolServices:
    portfolio: PortfolioService


def build_tool_services(portfolio: PortfolioService) -> ToolServices:
    return ToolServices(portfolio=portfolio)


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_portfolio_tools(mcp, services)
