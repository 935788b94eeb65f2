from datetime import date

import pytest

from bond_server.bonds.schedule import (
    ScheduleBuilder,
    build_period_bounds,
    parse_term_months,
    resolve_buyout_date,
    resolve_purchase_date,
)
from bond_server.bonds.symbols import parse_bond_symbol
from bond_server.providers.models import BondSeriesRecord


def _series(**overrides) -> BondSeriesRecord:
    values = {
        "series_id": "ROR0125",
        "bond_type": "ROR",
        "sale_window_start": date(2024, 1, 1),
        "sale_window_end": date(2024, 1, 31),
        "emission_price": 100.0,
        "maturity": "12 miesięcy",
        "rate_values": (0.02, 0.025),
        "interest_values": (),
    }
    values.update(overrides)
    return BondSeriesRecord(**values)


def test_purchase_day_anchor_resolves_inside_sale_window() -> None:
    reference = parse_bond_symbol("ROR0127.19")
    assert reference is not None
    resolved = resolve_purchase_date(date(2024, 1, 2), date(2024, 1, 31), reference.purchase_day)
    assert resolved == date(2024, 1, 19)


def test_purchase_day_outside_window_falls_back_to_start() -> None:
    assert resolve_purchase_date(date(2024, 2, 1), date(2024, 2, 29), 31) == date(2024, 2, 1)
    assert resolve_purchase_date(date(2024, 2, 1), date(2024, 2, 29), None) == date(2024, 2, 1)


def test_parse_term_months_understands_polish_units() -> None:
    assert parse_term_months("12 miesięcy") == 12
    assert parse_term_months("3 m.") == 3
    assert parse_term_months("4 lata") == 48
    assert parse_term_months("10 lat") == 120
    assert parse_term_months("1 rok") == 12
    assert parse_term_months("wkrótce") is None
    assert parse_term_months(None) is None


def test_buyout_from_textual_term_clamps_month_end() -> None:
    series = _series(maturity="1 miesiąc")
    assert resolve_buyout_date(series, date(2024, 1, 31)) == date(2024, 2, 29)
    assert resolve_buyout_date(_series(maturity=date(2030, 5, 1)), date(2024, 1, 31)) == date(2030, 5, 1)
    assert resolve_buyout_date(_series(maturity=None), date(2024, 1, 31)) is None


def test_ots_with_anchor_uses_rate_over_exact_days() -> None:
    series = _series(
        series_id="OTS0126",
        bond_type="OTS",
        sale_window_start=date(2025, 1, 1),
        sale_window_end=date(2025, 1, 31),
        maturity=date(2026, 1, 19),
        rate_values=(0.03,),
        interest_values=(0.75,),
    )
    points = ScheduleBuilder().build(series, purchase_day=19)
    assert [(point.date, point.price) for point in points] == [
        (date(2025, 1, 19), 100.0),
        (date(2026, 1, 19), 103.0),
    ]


def test_ots_without_anchor_prefers_explicit_interest() -> None:
    series = _series(bond_type="OTS", maturity="3 miesiące", rate_values=(0.03,), interest_values=(0.75,))
    points = ScheduleBuilder().build(series)
    assert points[-1].date == date(2024, 4, 1)
    assert points[-1].price == 100.75


def test_ots_without_any_data_has_no_schedule() -> None:
    series = _series(bond_type="OTS", maturity="3 miesiące", rate_values=(None,), interest_values=())
    assert ScheduleBuilder().build(series) is None


def test_multi_period_uses_equal_calendar_month_spans() -> None:
    builder = ScheduleBuilder()
    periods = builder.accrual_periods(_series())
    assert [(period.start, period.end) for period in periods] == [
        (date(2024, 1, 1), date(2024, 7, 1)),
        (date(2024, 7, 1), date(2025, 1, 1)),
    ]
    points = builder.build(_series())
    assert [(point.date, point.price) for point in points] == [
        (date(2024, 1, 1), 100.0),
        (date(2024, 7, 1), 101.0),
        (date(2025, 1, 1), 102.27),
    ]


def test_day_spans_absorb_remainder_in_earlier_periods() -> None:
    bounds = build_period_bounds(date(2024, 1, 1), date(2024, 1, 11), 3, None)
    assert bounds == [
        (date(2024, 1, 1), date(2024, 1, 5)),
        (date(2024, 1, 5), date(2024, 1, 8)),
        (date(2024, 1, 8), date(2024, 1, 11)),
    ]


def test_month_bounds_are_offsets_from_purchase_date() -> None:
    bounds = build_period_bounds(date(2024, 1, 31), date(2025, 1, 31), 12, 1)
    assert [end for _, end in bounds[:4]] == [
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
        date(2024, 5, 31),
    ]
    assert bounds[-1] == (date(2024, 12, 31), date(2025, 1, 31))
    assert all(prev[1] == nxt[0] for prev, nxt in zip(bounds, bounds[1:]))


def test_interest_policy_selects_explicit_or_rate_accrual() -> None:
    series = _series(rate_values=(0.02, 0.025), interest_values=(1.5, None))
    explicit = ScheduleBuilder(interest_policy="explicit").build(series)
    by_rate = ScheduleBuilder(interest_policy="rate").build(series)
    assert explicit[1].price == 101.5
    assert by_rate[1].price == 101.0


def test_periods_without_data_are_skipped() -> None:
    series = _series(rate_values=(None, 0.025))
    points = ScheduleBuilder().build(series)
    assert [point.date for point in points] == [date(2024, 1, 1), date(2025, 1, 1)]
    assert points[-1].price == round(100 + 100 * 0.025 * 184 / 365, 2)


def test_schedule_unavailable_without_rates_or_maturity() -> None:
    builder = ScheduleBuilder()
    assert builder.build(_series(rate_values=(), interest_values=())) is None
    assert builder.build(_series(rate_values=(None, None))) is None
    assert builder.build(_series(maturity="bezterminowe")) is None
    assert builder.build(_series(maturity=date(2023, 12, 1))) is None


def test_event_schedule_is_deterministic_and_ordered() -> None:
    series = _series(maturity="4 lata", rate_values=(0.068, 0.02, 0.021, 0.019))
    builder = ScheduleBuilder()
    first = builder.build(series)
    second = builder.build(series)
    assert first == second
    dates = [point.date for point in first]
    assert dates == sorted(set(dates))
    assert dates[0] == date(2024, 1, 1)
    assert dates[-1] == date(2028, 1, 1)
    running = 100.0
    for period in builder.accrual_periods(series):
        running = round(running + running * _rate_for(series, period.start) * (period.end - period.start).days / 365, 2)
    assert first[-1].price == running


def _rate_for(series: BondSeriesRecord, start: date) -> float:
    index = (start.year - 2024)
    return series.rate_values[index]


def test_daily_schedule_interpolates_and_stops_at_today() -> None:
    builder = ScheduleBuilder(mode="daily")
    today = date(2024, 8, 15)
    points = builder.build(_series(), today=today)
    assert points[0].date == date(2024, 1, 1)
    assert points[0].price == 100.0
    assert points[-1].date == today
    assert len(points) == (today - date(2024, 1, 1)).days + 1
    assert all(point.date <= today for point in points)
    by_date = {point.date: point.price for point in points}
    assert by_date[date(2024, 7, 1)] == 101.0
    assert by_date[date(2024, 7, 2)] >= 101.0
    prices = [point.price for point in points]
    assert prices == sorted(prices)


def test_daily_schedule_ends_at_buyout_when_fully_in_past() -> None:
    points = ScheduleBuilder().build(_series(), today=date(2026, 10, 18), mode="daily")
    assert points[-1].date == date(2025, 1, 1)
    assert points[-1].price == 102.27
    assert len({point.date for point in points}) == len(points)


def test_daily_schedule_before_purchase_is_unavailable() -> None:
    assert ScheduleBuilder(mode="daily").build(_series(), today=date(2023, 12, 31)) is None


def test_invalid_builder_options_are_rejected() -> None:
    with pytest.raises(ValueError):
        ScheduleBuilder(mode="weekly")
    with pytest.raises(ValueError):
        ScheduleBuilder(interest_policy="average")
