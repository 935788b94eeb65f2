"""Bond pricing tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import FastMCP

from bond_server.bonds.symbols import normalize_symbol, parse_bond_symbol
from bond_server.lib.formatters import format_response, line_price, schedule_lines
from bond_server.tools.common import ensure_data, timed_call

if TYPE_CHECKING:
    from bond_server.tools.registry import ToolServices


def register_bond_tools(mcp: FastMCP, services: ToolServices) -> None:
    @mcp.tool(description="Price schedule for a bond symbol such as ROR0127 or EDO0434.15 (suffix = purchase day).")
    async def get_bond_schedule(symbol: str, mode: str = "", limit: int = 60) -> str:
        async def _run() -> str:
            reference = parse_bond_symbol(symbol)
            if reference is None:
                raise ValueError("Symbol must look like ABC1234 or ABC1234.DD.")
            series = ensure_data(
                await services.catalog.get_series(reference.series_id, reference.bond_type),
                f"No bond series data for {reference.series_id}.",
            )
            schedule_mode = mode.strip().lower() or None
            if schedule_mode not in (None, "events", "daily"):
                raise ValueError("Mode must be one of: events, daily.")
            points = ensure_data(
                services.builder.build(series, reference.purchase_day, mode=schedule_mode),
                f"No price schedule for {normalize_symbol(symbol)}.",
            )
            lines = [
                f"Sale window: {series.sale_window_start.isoformat()} - {series.sale_window_end.isoformat()}",
                line_price("Emission price", series.emission_price, services.currency),
                line_price("Last price", points[-1].price, services.currency),
                *schedule_lines(points, services.currency, limit=max(1, limit)),
            ]
            return format_response(title=f"Bond schedule: {normalize_symbol(symbol)}", lines=lines)

        return await timed_call("get_bond_schedule", symbol, _run())

    @mcp.tool(description="Synchronize synthesized prices for all held bond symbols.")
    async def refresh_bond_prices() -> str:
        report = await timed_call("refresh_bond_prices", None, services.engine.refresh_holdings())
        lines = [
            f"processed: {', '.join(report.processed) or 'none'}",
            f"skipped: {', '.join(report.skipped) or 'none'}",
            f"failed: {', '.join(report.failed) or 'none'}",
            f"quotes written: {report.quotes_written}",
        ]
        return format_response(title="Bond price sync", lines=lines, include_disclaimer=False)

    @mcp.tool(description="Per-symbol state of the bond price sync.")
    def get_bond_sync_status() -> str:
        status = services.engine.status()
        lines = [f"{symbol}: {state}" for symbol, state in status.items()] or ["no bond symbols seen yet"]
        return format_response(title="Bond sync status", lines=lines, include_disclaimer=False)
