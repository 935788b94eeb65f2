"""Heuristic column layout detection for bond price sheets.

Each yearly edition of the published table tends to add coupon columns, so the
rate and interest column groups are located from the header text instead of
fixed indices. The first header row names the groups ("Oprocentowanie" for the
interest rate, "Odsetki" for the interest amount); an optional second row splits
a group into one column per accrual period.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from bond_server.providers.models import LayoutDetection, SheetLayout

LOGGER = logging.getLogger(__name__)

RATE_HEADER = "Oprocentowanie"
INTEREST_HEADER = "Odsetki"


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _find_header(row: Sequence[Any], needle: str) -> int | None:
    for idx, value in enumerate(row):
        if isinstance(value, str) and needle in value:
            return idx
    return None


def _count_non_empty_from(row: Sequence[Any], start: int) -> int:
    count = 0
    for value in row[start:]:
        if _is_empty(value):
            break
        count += 1
    return count


def _has_sub_header(row: Sequence[Any]) -> bool:
    if not row or not _is_empty(row[0]):
        return False
    return any(isinstance(value, str) and value.strip() for value in row)


def infer_layout(rows: Sequence[Sequence[Any]]) -> LayoutDetection:
    header = rows[0] if rows else []
    sub_header = rows[1] if len(rows) > 1 else []

    rate_idx = _find_header(header, RATE_HEADER)
    if rate_idx is None:
        return LayoutDetection.not_found("no rate header")
    interest_idx = _find_header(header, INTEREST_HEADER)
    has_sub_header = _has_sub_header(sub_header)

    if has_sub_header:
        rate_count = _count_non_empty_from(sub_header, rate_idx)
        if interest_idx is not None and interest_idx > rate_idx:
            rate_count = min(rate_count, interest_idx - rate_idx)
    elif interest_idx is not None and interest_idx > rate_idx:
        rate_count = interest_idx - rate_idx
    else:
        rate_count = 1
    rate_count = max(1, rate_count)

    interest_count = 0
    if interest_idx is not None:
        interest_count = _count_non_empty_from(sub_header, interest_idx) if has_sub_header else 1
        if rate_idx > interest_idx:
            interest_count = min(interest_count, rate_idx - interest_idx)
        interest_count = max(1, interest_count)

    return LayoutDetection.found(
        SheetLayout(
            data_start_row=2 if has_sub_header else 1,
            rate_column_start=rate_idx,
            interest_column_start=interest_idx,
            rate_column_count=rate_count,
            interest_column_count=interest_count,
            has_sub_header=has_sub_header,
        )
    )


class SheetLayoutDetector:
    """Caches the inferred layout per sheet name; sheets are assumed stable."""

    def __init__(self) -> None:
        self._layouts: dict[str, SheetLayout] = {}

    def cached(self, sheet_name: str) -> SheetLayout | None:
        return self._layouts.get(sheet_name)

    def detect(self, sheet_name: str, rows: Sequence[Sequence[Any]]) -> LayoutDetection:
        cached = self._layouts.get(sheet_name)
        if cached is not None:
            return LayoutDetection.found(cached)
        detection = infer_layout(rows)
        if detection.layout is None:
            LOGGER.info("sheet layout not detected: sheet=%s reason=%s", sheet_name, detection.reason)
            return detection
        self._layouts[sheet_name] = detection.layout
        LOGGER.debug("sheet layout detected: sheet=%s layout=%s", sheet_name, detection.layout)
        return detection
