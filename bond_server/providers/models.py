"""Normalized data models shared across the bond pipeline and host adapters."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

ScheduleMode = Literal["events", "daily"]
InterestPolicy = Literal["explicit", "rate"]
Workbook = dict[str, list[list[Any]]]


@dataclass(frozen=True)
class BondReference:
    series_id: str
    bond_type: str
    purchase_day: int | None = None


@dataclass(frozen=True)
class SheetLayout:
    data_start_row: int
    rate_column_start: int
    interest_column_start: int | None
    rate_column_count: int
    interest_column_count: int
    has_sub_header: bool


@dataclass(frozen=True)
class LayoutDetection:
    layout: SheetLayout | None = None
    reason: str | None = None

    @classmethod
    def found(cls, layout: SheetLayout) -> LayoutDetection:
        return cls(layout=layout)

    @classmethod
    def not_found(cls, reason: str) -> LayoutDetection:
        return cls(reason=reason)

    @property
    def ok(self) -> bool:
        return self.layout is not None


@dataclass(frozen=True)
class BondSeriesRecord:
    series_id: str
    bond_type: str
    sale_window_start: date
    sale_window_end: date
    emission_price: float
    maturity: date | str | None
    rate_values: tuple[float | None, ...] = ()
    interest_values: tuple[float | None, ...] = ()


@dataclass(frozen=True)
class SchedulePoint:
    date: date
    price: float


@dataclass
class RecordedQuote:
    id: str
    symbol: str
    timestamp: str
    open: float
    high: float
    low: float
    close: float
    adjclose: float
    volume: float = 0
    currency: str = "PLN"
    data_source: str = "MANUAL"
    created_at: str | None = None


@dataclass
class AssetProfile:
    symbol: str
    name: str | None = None
    asset_class: str | None = None
    asset_sub_class: str | None = None
    countries: str | None = None
    sectors: str | None = None
    notes: str | None = None


@dataclass
class Account:
    id: str
    name: str | None = None
    currency: str = "PLN"


@dataclass
class Holding:
    account_id: str
    symbol: str
    quantity: float = 0.0
