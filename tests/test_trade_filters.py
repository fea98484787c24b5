#!/usr/bin/env python3
"""Working-set filter and range preset tests."""

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from trade_filters import TradeFilters, apply_filters, in_date_range, resolve_time_range
from trade_models import Trade


def _t(day: str, **kw) -> Trade:
    return Trade(date=date.fromisoformat(day), raw_return=1.0, **kw)


def test_minimum_filters_are_inclusive() -> None:
    trades = [
        _t("2024-01-02", volume=1_000_000, price=5.0, probability=80, ticker="A"),
        _t("2024-01-02", volume=999_999, price=5.0, probability=80, ticker="B"),
        _t("2024-01-02", volume=1_000_000, price=4.99, probability=80, ticker="C"),
        _t("2024-01-02", volume=1_000_000, price=5.0, probability=74, ticker="D"),
    ]
    filters = TradeFilters(min_volume=1_000_000, min_price=5.0, min_probability=75)
    assert [t.ticker for t in apply_filters(trades, filters)] == ["A"]


def test_missing_probability_is_read_as_default() -> None:
    trades = [_t("2024-01-02", ticker="X")]
    assert apply_filters(trades, TradeFilters(min_probability=70)) == trades
    assert apply_filters(trades, TradeFilters(min_probability=71)) == []


def test_date_range_inclusive_and_open_ended() -> None:
    day = date(2024, 1, 10)
    assert in_date_range(day, None)
    assert in_date_range(day, (date(2024, 1, 10), date(2024, 1, 10)))
    assert in_date_range(day, (None, date(2024, 1, 10)))
    assert in_date_range(day, (date(2024, 1, 1), None))
    assert not in_date_range(day, (date(2024, 1, 11), None))
    assert not in_date_range(day, (None, date(2024, 1, 9)))


def test_no_filters_keeps_everything() -> None:
    trades = [_t("2024-01-02"), _t("2024-01-03")]
    assert apply_filters(trades) == trades
    assert apply_filters([], TradeFilters(min_volume=5)) == []


@pytest.mark.parametrize(
    "preset,start",
    [
        ("1W", date(2024, 3, 24)),
        ("1M", date(2024, 2, 29)),
        ("3M", date(2023, 12, 31)),
        ("YTD", date(2024, 1, 1)),
        ("1Y", date(2023, 3, 31)),
    ],
)
def test_time_range_presets(preset: str, start: date) -> None:
    today = date(2024, 3, 31)
    assert resolve_time_range(preset, today) == (start, today)


def test_all_preset_is_unbounded_and_unknown_raises() -> None:
    assert resolve_time_range("all", date(2024, 3, 31)) is None
    with pytest.raises(ValueError):
        resolve_time_range("2W", date(2024, 3, 31))
