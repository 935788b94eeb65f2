"""Bond series catalog parsed from the source workbook."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Sequence

from bond_server.bonds.layout import SheetLayoutDetector
from bond_server.bonds.symbols import BOND_SYMBOL_PATTERN
from bond_server.cache.workbook_cache import SourceWorkbookCache
from bond_server.lib.dates import to_date, to_number
from bond_server.providers.models import BondSeriesRecord, SheetLayout

LOGGER = logging.getLogger(__name__)

DESCRIPTION_SHEET = "Opis"
SERIES_COLUMN = 0
MATURITY_COLUMN = 2
SALE_START_COLUMN = 3
SALE_END_COLUMN = 4
EMISSION_PRICE_COLUMN = 5


def _cell(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if 0 <= idx < len(row) else None


def _extract_numbers(row: Sequence[Any], start: int | None, count: int) -> tuple[float | None, ...]:
    if start is None:
        return ()
    return tuple(to_number(_cell(row, start + offset)) for offset in range(count))


def _maturity(value: Any) -> date | str | None:
    if isinstance(value, str):
        return to_date(value) or value.strip() or None
    return to_date(value)


def parse_series_row(row: Sequence[Any], layout: SheetLayout, bond_type: str) -> BondSeriesRecord | None:
    """Return a series record, or None for rows that are not well-formed series rows."""
    series_id = str(_cell(row, SERIES_COLUMN) or "").strip().upper()
    if not series_id or not BOND_SYMBOL_PATTERN.match(series_id):
        return None
    sale_start = to_date(_cell(row, SALE_START_COLUMN))
    sale_end = to_date(_cell(row, SALE_END_COLUMN))
    emission_price = to_number(_cell(row, EMISSION_PRICE_COLUMN))
    if sale_start is None or sale_end is None or emission_price is None or emission_price <= 0:
        return None
    return BondSeriesRecord(
        series_id=series_id,
        bond_type=bond_type,
        sale_window_start=sale_start,
        sale_window_end=sale_end,
        emission_price=emission_price,
        maturity=_maturity(_cell(row, MATURITY_COLUMN)),
        rate_values=_extract_numbers(row, layout.rate_column_start, layout.rate_column_count),
        interest_values=_extract_numbers(row, layout.interest_column_start, layout.interest_column_count),
    )


def parse_description_rows(rows: Sequence[Sequence[Any]]) -> dict[str, str]:
    descriptions: dict[str, str] = {}
    for row in rows:
        code = str(_cell(row, 1) or "").strip().upper()
        description = str(_cell(row, 2) or "").strip()
        if code and description:
            descriptions[code] = description
    return descriptions


class SeriesCatalog:
    def __init__(self, workbooks: SourceWorkbookCache, layouts: SheetLayoutDetector | None = None) -> None:
        self._workbooks = workbooks
        self._layouts = layouts or SheetLayoutDetector()
        self._series: dict[str, dict[str, BondSeriesRecord] | None] = {}
        self._descriptions: dict[str, str] | None = None

    async def load_bond_type(self, bond_type: str) -> dict[str, BondSeriesRecord] | None:
        if bond_type in self._series:
            return self._series[bond_type]
        workbook = await self._workbooks.get_workbook()
        rows = workbook.get(bond_type)
        if rows is None:
            LOGGER.info("bond sheet missing: bond_type=%s", bond_type)
            self._series[bond_type] = None
            return None
        detection = self._layouts.detect(bond_type, rows)
        if detection.layout is None:
            self._series[bond_type] = None
            return None

        series_map: dict[str, BondSeriesRecord] = {}
        for row in rows[detection.layout.data_start_row:]:
            if not row:
                continue
            record = parse_series_row(row, detection.layout, bond_type)
            if record is not None:
                series_map[record.series_id] = record
        LOGGER.info("bond sheet parsed: bond_type=%s series=%s", bond_type, len(series_map))
        self._series[bond_type] = series_map
        return series_map

    async def get_series(self, series_id: str, bond_type: str) -> BondSeriesRecord | None:
        series_map = await self.load_bond_type(bond_type)
        if not series_map:
            return None
        return series_map.get(series_id)

    async def get_description(self, bond_type: str) -> str | None:
        if self._descriptions is None:
            workbook = await self._workbooks.get_workbook()
            self._descriptions = parse_description_rows(workbook.get(DESCRIPTION_SHEET) or [])
        return self._descriptions.get(bond_type.strip().upper())
