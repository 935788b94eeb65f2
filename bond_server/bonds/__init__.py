"""Bond series parsing and price schedule domain package."""

from bond_server.bonds.catalog import SeriesCatalog
from bond_server.bonds.layout import SheetLayoutDetector
from bond_server.bonds.schedule import ScheduleBuilder
from bond_server.bonds.symbols import parse_bond_symbol

__all__ = ["ScheduleBuilder", "SeriesCatalog", "SheetLayoutDetector", "parse_bond_symbol"]
