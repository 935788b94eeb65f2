"""Application entrypoint for the Polish bond price MCP server."""

from __future__ import annotations

import asyncio
import logging
import os

from mcp.server.fastmcp import FastMCP
from starlette.responses import JSONResponse, Response

from bond_server.bonds.catalog import SeriesCatalog
from bond_server.bonds.layout import SheetLayoutDetector
from bond_server.bonds.schedule import ScheduleBuilder
from bond_server.cache.workbook_cache import SourceWorkbookCache
from bond_server.config.settings import Settings, get_settings
from bond_server.host.base import HostApi
from bond_server.host.local import LocalHost
from bond_server.runtime.monitoring import configure_logging
from bond_server.services.sync_engine import SyncEngine, WriteLease
from bond_server.tools.registry import ToolServices, register_all_tools

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


def build_services(settings: Settings, host: HostApi) -> ToolServices:
    workbooks = SourceWorkbookCache(settings.bonds_source_url, settings.request_timeout_seconds)
    catalog = SeriesCatalog(workbooks, SheetLayoutDetector())
    builder = ScheduleBuilder(mode=settings.schedule_mode, interest_policy=settings.interest_policy)
    engine = SyncEngine(
        host,
        catalog,
        builder,
        tolerance=settings.price_tolerance,
        batch_size=settings.quote_batch_size,
        currency=settings.quote_currency,
        lease=WriteLease(settings.write_lease_seconds),
    )
    return ToolServices(catalog=catalog, builder=builder, engine=engine, currency=settings.quote_currency)


async def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    host = LocalHost(settings.holdings_file, settings.quote_store_file)
    services = build_services(settings, host)

    mcp = FastMCP(
        name=settings.app_name,
        host=settings.host,
        port=settings.port,
        streamable_http_path=settings.mcp_path,
    )
    register_all_tools(mcp, services)
    resolved_mode = resolve_transport_mode(settings.transport_mode)
    resolved_http_transport = resolve_http_transport(settings.http_transport)

    @mcp.custom_route(settings.health_path, methods=["GET"])
    async def health_check(_: object) -> Response:
        return JSONResponse(
            {
                "status": "ok",
                "service": settings.app_name,
                "mode": resolved_mode,
                "schedule_mode": services.builder.mode,
                "tracked_symbols": services.engine.status(),
            }
        )

    if not os.path.exists(settings.holdings_file):
        LOGGER.warning("holdings file not found: path=%s (set HOLDINGS_FILE)", settings.holdings_file)

    tracking = asyncio.ensure_future(services.engine.start())
    try:
        if resolved_mode == "stdio":
            await mcp.run_stdio_async()
        elif resolved_http_transport == "streamable":
            await mcp.run_streamable_http_async()
        else:
            await mcp.run_sse_async()
    finally:
        services.engine.stop()
        tracking.cancel()
        await host.flush()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
