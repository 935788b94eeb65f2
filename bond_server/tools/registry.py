"""Domain tool registry entrypoint."""

from __future__ import annotations

from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from bond_server.bonds.catalog import SeriesCatalog
from bond_server.bonds.schedule import ScheduleBuilder
from bond_server.services.sync_engine import SyncEngine
from bond_server.tools.bond_tools import register_bond_tools


@dataclass
class ToolServices:
    catalog: SeriesCatalog
    builder: ScheduleBuilder
    engine: SyncEngine
    currency: str = "PLN"


def register_all_tools(mcp: FastMCP, services: ToolServices) -> None:
    register_bond_tools(mcp, services)
