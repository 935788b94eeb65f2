"""Quote record construction and reconciliation against recorded history."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, replace
from datetime import date, datetime

from bond_server.bonds.symbols import normalize_symbol
from bond_server.host.base import HostApi
from bond_server.providers.models import RecordedQuote, SchedulePoint

DEFAULT_TOLERANCE = 0.004
DEFAULT_BATCH_SIZE = 50
MANUAL_DATA_SOURCE = "MANUAL"
_ISO_IN_ID = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_COMPACT_IN_ID = re.compile(r"(\d{8})")


@dataclass
class QuoteDiff:
    additions: list[RecordedQuote]
    updates: list[RecordedQuote]
    unchanged: int = 0

    @property
    def writes(self) -> list[RecordedQuote]:
        return [*self.additions, *self.updates]


def build_quote(symbol: str, quote_date: date, price: float, currency: str = "PLN") -> RecordedQuote:
    date_iso = quote_date.isoformat()
    timestamp = f"{date_iso}T00:00:00.000Z"
    normalized = normalize_symbol(symbol)
    return RecordedQuote(
        id=f"{date_iso.replace('-', '')}_{normalized}",
        symbol=normalized,
        timestamp=timestamp,
        open=price,
        high=price,
        low=price,
        close=price,
        adjclose=price,
        volume=0,
        currency=currency,
        data_source=MANUAL_DATA_SOURCE,
        created_at=timestamp,
    )


def merge_existing(base: RecordedQuote, existing: RecordedQuote) -> RecordedQuote:
    """Price update that keeps the recorded quote's identity fields."""
    return replace(
        base,
        id=existing.id or base.id,
        created_at=existing.created_at or base.created_at,
        data_source=existing.data_source or base.data_source,
    )


def quote_date_key(quote: RecordedQuote) -> str | None:
    """ISO date of a recorded quote, from its timestamp or digits in its id."""
    if quote.timestamp:
        try:
            return datetime.fromisoformat(quote.timestamp.replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            pass
    quote_id = quote.id or ""
    iso_match = _ISO_IN_ID.search(quote_id)
    if iso_match:
        return "-".join(iso_match.groups())
    compact_match = _COMPACT_IN_ID.search(quote_id)
    if compact_match:
        compact = compact_match.group(1)
        return f"{compact[:4]}-{compact[4:6]}-{compact[6:8]}"
    return None


def recorded_price(quote: RecordedQuote) -> float:
    for value in (quote.adjclose, quote.close, quote.open):
        if isinstance(value, (int, float)):
            return float(value)
    return 0.0


def index_history(history: list[RecordedQuote]) -> dict[str, RecordedQuote]:
    by_date: dict[str, RecordedQuote] = {}
    for quote in history:
        key = quote_date_key(quote)
        if key and key not in by_date:
            by_date[key] = quote
    return by_date


def diff_schedule(
    symbol: str,
    points: list[SchedulePoint],
    history: dict[str, RecordedQuote],
    tolerance: float = DEFAULT_TOLERANCE,
    currency: str = "PLN",
) -> QuoteDiff:
    diff = QuoteDiff(additions=[], updates=[])
    for point in points:
        existing = history.get(point.date.isoformat())
        base = build_quote(symbol, point.date, point.price, currency)
        if existing is None:
            diff.additions.append(base)
        elif abs(recorded_price(existing) - point.price) > tolerance:
            diff.updates.append(merge_existing(base, existing))
        else:
            diff.unchanged += 1
    return diff


async def upsert_in_batches(host: HostApi, quotes: list[RecordedQuote], batch_size: int = DEFAULT_BATCH_SIZE) -> int:
    size = max(1, batch_size)
    for start in range(0, len(quotes), size):
        batch = quotes[start:start + size]
        await asyncio.gather(*(host.update_quote(quote.symbol, quote) for quote in batch))
    return len(quotes)
