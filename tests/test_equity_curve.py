#!/usr/bin/env python3
"""Equity curve replay regressions."""

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from equity_curve import build
from trade_models import SL_DISABLED, Trade, to_jsonable


def _t(day: str, raw: float, **kw) -> Trade:
    return Trade(date=date.fromisoformat(day), raw_return=raw, **kw)


def test_two_trade_day_counts_and_totals() -> None:
    curve = build([_t("2024-01-02", 5.0), _t("2024-01-02", -8.0)], tp=2.0, sl=3.0)
    assert len(curve.points) == 1
    point = curve.points[0]
    assert point.date == date(2024, 1, 2)
    assert point.hit_tp == 1
    assert point.hit_sl == 1
    assert point.other == 0
    assert point.trade_count == 2
    assert point.total_clamped_return == pytest.approx(-1.0)
    assert point.total_raw_return == pytest.approx(-3.0)


def test_empty_input_is_empty_curve() -> None:
    curve = build([], tp=2.0, sl=3.0)
    assert curve.points == []
    assert curve.classified == []
    assert curve.is_empty
    assert curve.max_win_streak == 0
    assert curve.max_loss_streak == 0


def test_points_are_sorted_and_cumulative_on_both_series() -> None:
    trades = [
        _t("2024-01-04", 1.0),
        _t("2024-01-02", 6.0),
        _t("2024-01-03", -5.0),
    ]
    curve = build(trades, tp=2.0, sl=3.0)
    assert [p.date.isoformat() for p in curve.points] == ["2024-01-02", "2024-01-03", "2024-01-04"]
    assert [p.cumulative_raw_equity for p in curve.points] == pytest.approx([6.0, 1.0, 2.0])
    assert [p.cumulative_clamped_equity for p in curve.points] == pytest.approx([2.0, -1.0, 0.0])


def test_drawdown_is_tracked_on_raw_series() -> None:
    trades = [
        _t("2024-01-02", 6.0),
        _t("2024-01-03", -5.0),
        _t("2024-01-04", 1.0),
        _t("2024-01-05", 9.0),
    ]
    curve = build(trades, tp=2.0, sl=3.0)
    # Clamped series would show a 3.0 drop; the raw one drops 5.0.
    assert [p.drawdown for p in curve.points] == pytest.approx([0.0, 5.0, 4.0, 0.0])


def test_losing_first_day_is_drawdown_from_zero_baseline() -> None:
    curve = build([_t("2024-01-02", -2.0)], tp=2.0, sl=SL_DISABLED)
    assert curve.points[0].drawdown == pytest.approx(2.0)


def test_drawdown_invariants_hold_on_mixed_series() -> None:
    raws = [3.0, -1.0, -4.0, 2.5, 0.0, 7.0, -0.5, -9.0, 1.0, 12.0]
    trades = [_t(f"2024-02-{i + 1:02d}", raw) for i, raw in enumerate(raws)]
    curve = build(trades, tp=4.0, sl=2.0)
    peak = 0.0
    for point in curve.points:
        assert point.drawdown >= 0
        assert point.hit_tp + point.hit_sl + point.other == point.trade_count
        if point.cumulative_raw_equity >= peak:
            peak = point.cumulative_raw_equity
            assert point.drawdown == 0
        assert point.drawdown == pytest.approx(max(peak - point.cumulative_raw_equity, 0.0))


def test_streaks_follow_individual_trades_across_days() -> None:
    trades = [
        _t("2024-01-02", 1.0),
        _t("2024-01-02", 1.0),
        _t("2024-01-02", -1.0),
        _t("2024-01-03", 1.0),
        _t("2024-01-03", 1.0),
        _t("2024-01-04", 1.0),
        _t("2024-01-04", 0.0),
        _t("2024-01-04", -2.0),
        _t("2024-01-05", -2.0),
    ]
    curve = build(trades, tp=5.0, sl=3.0)
    # Wins span the 01-03/01-04 day boundary; a flat trade breaks a streak.
    assert curve.max_win_streak == 3
    assert curve.max_loss_streak == 3


def test_daily_average_lookup_decorates_points() -> None:
    trades = [_t("2024-01-02", 1.0), _t("2024-01-03", 2.0)]
    curve = build(trades, tp=5.0, sl=3.0, daily_averages={date(2024, 1, 2): 0.75})
    assert curve.points[0].avg_return_of_day == 0.75
    assert curve.points[1].avg_return_of_day == 0.0


def test_build_is_idempotent() -> None:
    trades = [_t("2024-01-02", 5.0), _t("2024-01-03", -8.0), _t("2024-01-03", 0.4)]
    first = to_jsonable(build(trades, tp=2.0, sl=3.0))
    second = to_jsonable(build(trades, tp=2.0, sl=3.0))
    assert first == second


def test_legacy_off_stop_value_is_not_a_live_stop() -> None:
    curve = build([Trade(date=date(2024, 1, 2), raw_return=-100.0)], tp=2.0, sl=100.0)
    point = curve.points[0]
    assert point.hit_sl == 0
    assert point.other == 1
    assert point.total_clamped_return == -100.0
