"""Bond symbol normalization and parsing."""

from __future__ import annotations

import re

from bond_server.providers.models import BondReference

BOND_SYMBOL_PATTERN = re.compile(r"^([A-Z]{3}\d{4})(?:\.(\d{1,2}))?$")


def normalize_symbol(value: str) -> str:
    return value.strip().upper()


def is_bond_symbol(symbol: str) -> bool:
    return BOND_SYMBOL_PATTERN.match(normalize_symbol(symbol)) is not None


def parse_bond_symbol(symbol: str) -> BondReference | None:
    """Parse `LLLNNNN` or `LLLNNNN.DD` where DD is the purchase day-of-month."""
    match = BOND_SYMBOL_PATTERN.match(normalize_symbol(symbol))
    if not match:
        return None
    series_id = match.group(1)
    purchase_day = int(match.group(2)) if match.group(2) else None
    if purchase_day is not None and not 1 <= purchase_day <= 31:
        purchase_day = None
    return BondReference(series_id=series_id, bond_type=series_id[:3], purchase_day=purchase_day)


def format_bond_symbol(reference: BondReference) -> str:
    if reference.purchase_day is None:
        return reference.series_id
    return f"{reference.series_id}.{reference.purchase_day:02d}"
