"""Application entrypoint for the portfolio tracker MCP server."""

from __future__ import annotations

import asyncio
import logging
import os
import sys

from mcp.server.fastmcp import FastMCP
from starlette.responses import JSONResponse, Response

from portfolio_tracker.cache.ttl_cache import TTLCache
from portfolio_tracker.config.settings import Settings, get_settings
from portfolio_tracker.portfolio.persistence import JsonFileStorage
from portfolio_tracker.portfolio.portfolio_service import PortfolioService
from portfolio_tracker.portfolio.store import PortfolioStore
from portfolio_tracker.providers.coinbase import CoinbaseClient
from portfolio_tracker.providers.finnhub import FinnhubClient
from portfolio_tracker.services.base import ServiceContext
from portfolio_tracker.services.quote_service import QuoteService
from portfolio_tracker.tools.registry import ToolServices, build_tool_services, register_all_tools
from portfolio_tracker.utils.rate_limit import RateLimiterRegistry

LOGGER = logging.getLogger(__name__)


def resolve_transport_mode(configured_mode: str) -> str:
    if configured_mode in {"stdio", "http"}:
        return configured_mode
    if os.getenv("PORT"):
        return "http"
    return "stdio"


def resolve_http_transport(configured_transport: str) -> str:
    if configured_transport in {"sse", "streamable"}:
        return configured_transport
    return "sse"


def configure_logging(level: str) -> None:
    # stdout carries the stdio transport.
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_services(settings: Settings) -> ToolServices:
    finnhub_client = (
        FinnhubClient(settings.finnhub_api_key, settings.request_timeout_seconds)
        if settings.finnhub_api_key
        else None
    )
    coinbase_client = CoinbaseClient(settings.request_timeout_seconds) if settings.coinbase_enabled else None
    service_ctx = ServiceContext(
        providers={"finnhub": finnhub_client, "coinbase": coinbase_client},
        cache=TTLCache(default_ttl_seconds=settings.cache_ttl_quote_seconds),
        rate_limiter=RateLimiterRegistry(min_interval_seconds=settings.provider_min_interval_seconds),
        quote_ttl_seconds=settings.cache_ttl_quote_seconds,
        history_ttl_seconds=settings.cache_ttl_history_seconds,
        request_timeout_seconds=settings.request_timeout_seconds,
        history_timeout_seconds=settings.history_timeout_seconds,
        quote_retries=settings.quote_retries,
        history_retries=settings.history_retries,
    )
    store = PortfolioStore(JsonFileStorage(settings.resolved_storage_path))
    portfolio = PortfolioService(
        store,
        QuoteService(service_ctx),
        history_timeout_seconds=settings.history_timeout_seconds,
        history_retries=settings.history_retries,
    )
    if finnhub_client is None:
        LOGGER.warning("FINNHUB_API_KEY is not set; stock quotes and history are unavailable.")
    if coinbase_client is None:
        LOGGER.warning("COINBASE_ENABLED is off; crypto quotes and history are unavailable.")
    return build_tool_services(portfolio)


async def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    services = build_services(settings)
    mcp = FastMCP(name=settings.app_name, host=settings.host, port=settings.port)
    register_all_tools(mcp, services)
    resolved_mode = resolve_transport_mode(settings.transport_mode)
    resolved_http_transport = resolve_http_transport(settings.http_transport)

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(_: object) -> Response:
        tools = await mcp.list_tools()
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "version": settings.app_version,
                "mode": resolved_mode,
                "tool_count": len(tools),
                "portfolio_count": len(services.portfolio.store.portfolios),
            }
        )

    LOGGER.info(
        "starting server: mode=%s http_transport=%s storage=%s",
        resolved_mode,
        resolved_http_transport,
        settings.resolved_storage_path,
    )
    if resolved_mode == "stdio":
        await mcp.run_stdio_async()
    elif resolved_http_transport == "streamable":
        await mcp.run_streamable_http_async()
    else:
        await mcp.run_sse_async()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
