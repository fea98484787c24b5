#!/usr/bin/env python3
"""Calendar and segment breakdown tests."""

import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from equity_curve import build
from outcome_classifier import classify_trades
from period_stats import (
    as_lookup,
    daily_averages,
    leaderboard,
    move_distribution,
    top_periods,
    weekday_seasonality,
)
from trade_models import SL_DISABLED, Trade


def _t(day: str, raw: float, **kw) -> Trade:
    return Trade(date=date.fromisoformat(day), raw_return=raw, **kw)


def test_daily_averages_use_clamped_returns() -> None:
    trades = [
        _t("2024-01-03", 9.0, price=10.0),
        _t("2024-01-02", 1.0, price=20.0),
        _t("2024-01-02", -7.0, price=30.0),
    ]
    rows = daily_averages(trades, tp=2.0, sl=3.0)
    assert [r.date for r in rows] == [date(2024, 1, 2), date(2024, 1, 3)]
    assert rows[0].avg_return == pytest.approx(-1.0)
    assert rows[0].avg_price == pytest.approx(25.0)
    assert rows[0].count == 2
    assert rows[1].avg_return == pytest.approx(2.0)
    assert as_lookup(rows)[date(2024, 1, 3)] == pytest.approx(2.0)


def test_top_periods_rank_days_weeks_months() -> None:
    trades = [
        _t("2024-01-02", 3.0),
        _t("2024-01-03", 1.0),
        _t("2024-01-07", 4.0),  # Sunday opens a new week
        _t("2024-02-01", -2.0),
    ]
    curve = build(trades, tp=10.0, sl=SL_DISABLED)
    top = top_periods(curve.points, limit=2)
    assert [(p.period, p.total_return) for p in top.days] == [("2024-01-07", 4.0), ("2024-01-02", 3.0)]
    assert [(p.period, p.total_return) for p in top.weeks] == [("2023-12-31", 4.0), ("2024-01-07", 4.0)]
    assert [(p.period, p.total_return) for p in top.months] == [("2024-01", 8.0), ("2024-02", -2.0)]


def test_weekday_seasonality_reports_monday_to_friday() -> None:
    trades = [
        _t("2024-01-01", 1.0),   # Monday
        _t("2024-01-01", 0.2),   # Monday, below win threshold
        _t("2024-01-05", -1.0),  # Friday
        _t("2024-01-06", 5.0),   # Saturday is not reported
    ]
    rows = weekday_seasonality(classify_trades(trades, 5.0, SL_DISABLED))
    assert [r.name for r in rows] == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
    assert rows[0].count == 2
    assert rows[0].avg_return == pytest.approx(0.6)
    assert rows[0].win_rate == pytest.approx(0.5)
    assert rows[1].count == 0
    assert rows[4].win_rate == 0.0


def test_leaderboards_by_ticker_and_sector() -> None:
    trades = [
        _t("2024-01-02", 1.0, ticker="AAA", sector="Tech"),
        _t("2024-01-03", 3.0, ticker="AAA", sector="Tech"),
        _t("2024-01-02", 4.0, ticker="BBB", sector="Energy"),
        _t("2024-01-02", -1.0, ticker="CCC"),
    ]
    classified = classify_trades(trades, 10.0, SL_DISABLED)
    tickers = leaderboard(classified, key="ticker", limit=2)
    assert [(g.name, g.count) for g in tickers] == [("AAA", 2), ("BBB", 1)]
    sectors = leaderboard(classified, key="sector", sort_by="avg_return")
    assert [g.name for g in sectors] == ["Energy", "Tech", "Unknown"]
    assert sectors[1].avg_return == pytest.approx(2.0)
    with pytest.raises(ValueError):
        leaderboard(classified, key="price")


def test_move_distribution_bins() -> None:
    trades = [_t("2024-01-02", r) for r in (-0.1, 0.0, 1.9, 2.0, 4.99, 5.0, 9.9, 10.0, 33.0)]
    bins = move_distribution(trades)
    assert [(b.name, b.count) for b in bins] == [
        ("< 0%", 1),
        ("0-2%", 2),
        ("2-5%", 2),
        ("5-10%", 2),
        ("> 10%", 2),
    ]
