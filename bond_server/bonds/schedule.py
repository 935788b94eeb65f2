"""Interest-accrual price schedules for retail treasury bonds.

A schedule starts at the purchase date at the emission price and accrues
interest period by period until the buyout date. The running value is rounded
to grosze at every period boundary and the next period compounds on the
rounded figure.

Two output shapes are supported:

* ``events``: one point per period boundary (including future boundaries).
* ``daily``: one point per calendar day up to today, linearly interpolated
  inside each period. Never emits a date after ``today``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from bond_server.lib.dates import add_days, add_months, days_between, iter_days, months_between
from bond_server.providers.models import BondSeriesRecord, InterestPolicy, ScheduleMode, SchedulePoint

SINGLE_PAYMENT_TYPES = frozenset({"OTS"})
DAYS_IN_YEAR = 365
_TERM_PATTERN = re.compile(r"(\d+)\s*([^\d\s]+)")


@dataclass(frozen=True)
class AccrualPeriod:
    start: date
    end: date
    start_value: float
    end_value: float
    accrued: bool = True


def round2(value: float) -> float:
    return round(value, 2)


def resolve_purchase_date(sale_start: date, sale_end: date, purchase_day: int | None = None) -> date:
    if not purchase_day or not 1 <= purchase_day <= 31:
        return sale_start
    for day in iter_days(sale_start, sale_end):
        if day.day == purchase_day:
            return day
    return sale_start


def parse_term_months(value: object) -> int | None:
    """Parse textual terms such as "12 miesięcy", "3 m.", "4 lata" or "1 rok"."""
    if not isinstance(value, str):
        return None
    normalized = " ".join(value.lower().split())
    match = _TERM_PATTERN.search(normalized)
    if not match:
        return None
    amount = int(match.group(1))
    if amount <= 0:
        return None
    unit = match.group(2)
    if unit.startswith(("mies", "m.", "m-c")):
        return amount
    if unit.startswith(("rok", "lat")):
        return amount * 12
    return None


def resolve_buyout_date(series: BondSeriesRecord, purchase_date: date) -> date | None:
    if isinstance(series.maturity, date):
        return series.maturity
    term_months = parse_term_months(series.maturity)
    if term_months is None:
        return None
    return add_months(purchase_date, term_months)


def resolve_period_months(term_months: int | None, period_count: int) -> int | None:
    if not term_months or period_count <= 0:
        return None
    if term_months % period_count == 0:
        return term_months // period_count
    return None


def build_period_bounds(start: date, end: date, period_count: int, period_months: int | None) -> list[tuple[date, date]]:
    """Split [start, end] into calendar-month periods, or near-equal day spans.

    Month boundaries are offsets from ``start`` (``start + k * months``), not a
    chain of single steps, so a Jan 31 start gives Feb 29, Mar 31, Apr 30. A
    chained walk would stay on the 29th after February and produce different
    period ends.
    """
    bounds: list[tuple[date, date]] = []
    if period_count <= 0:
        return bounds
    cursor = start
    if period_months:
        for idx in range(period_count):
            last = idx == period_count - 1
            next_bound = end if last else add_months(start, period_months * (idx + 1))
            bounds.append((cursor, next_bound))
            cursor = next_bound
        return bounds

    total_days = days_between(start, end)
    base_days, remainder = divmod(total_days, period_count)
    for idx in range(period_count):
        span = base_days + (1 if idx < remainder else 0)
        next_bound = end if idx == period_count - 1 else add_days(cursor, span)
        bounds.append((cursor, next_bound))
        cursor = next_bound
    return bounds


class ScheduleBuilder:
    def __init__(self, mode: ScheduleMode = "events", interest_policy: InterestPolicy = "explicit") -> None:
        if mode not in ("events", "daily"):
            raise ValueError("Schedule mode must be one of: events, daily.")
        if interest_policy not in ("explicit", "rate"):
            raise ValueError("Interest policy must be one of: explicit, rate.")
        self.mode = mode
        self.interest_policy = interest_policy

    def build(
        self,
        series: BondSeriesRecord,
        purchase_day: int | None = None,
        *,
        today: date | None = None,
        mode: ScheduleMode | None = None,
    ) -> list[SchedulePoint] | None:
        periods = self.accrual_periods(series, purchase_day)
        if not periods:
            return None
        if (mode or self.mode) == "daily":
            points = self._daily_points(periods, today or date.today())
        else:
            points = self._event_points(periods)
        return points or None

    def accrual_periods(self, series: BondSeriesRecord, purchase_day: int | None = None) -> list[AccrualPeriod] | None:
        purchase_date = resolve_purchase_date(series.sale_window_start, series.sale_window_end, purchase_day)
        buyout_date = resolve_buyout_date(series, purchase_date)
        if buyout_date is None or buyout_date <= purchase_date:
            return None
        if series.bond_type in SINGLE_PAYMENT_TYPES:
            return self._single_payment(series, purchase_date, buyout_date, purchase_day is not None)
        return self._multi_period(series, purchase_date, buyout_date)

    def _single_payment(
        self,
        series: BondSeriesRecord,
        purchase_date: date,
        buyout_date: date,
        anchored: bool,
    ) -> list[AccrualPeriod] | None:
        rate = series.rate_values[0] if series.rate_values else None
        interest = series.interest_values[0] if series.interest_values else None
        days = days_between(purchase_date, buyout_date)
        if anchored and rate is not None:
            amount = series.emission_price * rate * days / DAYS_IN_YEAR
        elif interest is not None:
            amount = interest
        elif rate is not None:
            amount = series.emission_price * rate * days / DAYS_IN_YEAR
        else:
            return None
        return [
            AccrualPeriod(
                start=purchase_date,
                end=buyout_date,
                start_value=series.emission_price,
                end_value=round2(series.emission_price + amount),
            )
        ]

    def _period_amount(self, running: float, rate: float | None, interest: float | None, days: int) -> float | None:
        by_rate = running * rate * days / DAYS_IN_YEAR if rate is not None else None
        if self.interest_policy == "rate":
            return by_rate if by_rate is not None else interest
        return interest if interest is not None else by_rate

    def _multi_period(self, series: BondSeriesRecord, purchase_date: date, buyout_date: date) -> list[AccrualPeriod] | None:
        period_count = max(len(series.rate_values), len(series.interest_values))
        if period_count <= 0:
            return None
        term_months = parse_term_months(series.maturity)
        if term_months is None:
            term_months = months_between(purchase_date, buyout_date)
        period_months = resolve_period_months(term_months, period_count)
        bounds = build_period_bounds(purchase_date, buyout_date, period_count, period_months)

        periods: list[AccrualPeriod] = []
        running = series.emission_price
        for idx, (start, end) in enumerate(bounds):
            rate = series.rate_values[idx] if idx < len(series.rate_values) else None
            interest = series.interest_values[idx] if idx < len(series.interest_values) else None
            amount = self._period_amount(running, rate, interest, days_between(start, end))
            if amount is None:
                periods.append(AccrualPeriod(start, end, running, running, accrued=False))
                continue
            next_value = round2(running + amount)
            periods.append(AccrualPeriod(start, end, running, next_value))
            running = next_value

        if not any(period.accrued for period in periods):
            return None
        return periods

    @staticmethod
    def _event_points(periods: list[AccrualPeriod]) -> list[SchedulePoint]:
        by_date: dict[date, float] = {periods[0].start: round2(periods[0].start_value)}
        for period in periods:
            if period.accrued:
                by_date[period.end] = period.end_value
        return [SchedulePoint(day, price) for day, price in sorted(by_date.items())]

    @staticmethod
    def _daily_points(periods: list[AccrualPeriod], today: date) -> list[SchedulePoint]:
        by_date: dict[date, float] = {}
        for period in periods:
            if period.start > today:
                break
            span = days_between(period.start, period.end)
            delta = period.end_value - period.start_value
            for day in iter_days(period.start, min(period.end, today)):
                if span == 0:
                    price = period.end_value
                else:
                    price = period.start_value + delta * days_between(period.start, day) / span
                by_date[day] = round2(price)
        return [SchedulePoint(day, price) for day, price in sorted(by_date.items())]
