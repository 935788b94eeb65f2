"""Calendar-date and spreadsheet cell coercion helpers."""

from __future__ import annotations

import calendar
import math
from datetime import date, datetime, timedelta
from numbers import Real

EXCEL_EPOCH = date(1899, 12, 30)
_DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d-%m-%Y", "%Y/%m/%d")


def to_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        number = float(value)
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        cleaned = value.strip().replace(",", ".")
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def to_date(value: object) -> date | None:
    """Coerce a spreadsheet cell into a calendar date, dropping any time of day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        serial = float(value)
        if not math.isfinite(serial) or serial <= 0:
            return None
        return EXCEL_EPOCH + timedelta(days=int(serial))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(text[:10], fmt).date()
            except ValueError:
                continue
    return None


def add_months(start: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's last day."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def add_days(start: date, days: int) -> date:
    return start + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    return max(0, (end - start).days)


def months_between(start: date, end: date, limit: int = 600) -> int | None:
    """Whole months from start to end, or None when end is not a month boundary."""
    months = 0
    cursor = start
    while cursor < end and months < limit:
        months += 1
        cursor = add_months(start, months)
    if cursor != end:
        return None
    return months


def iter_days(start: date, end: date):
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)
