#!/usr/bin/env python3
"""Calendar and segment breakdowns shown next to the equity curve."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from outcome_classifier import classify
from trade_models import ClassifiedTrade, DailyEquityPoint, Trade, safe_div

# A trade counts as a win in seasonality/leaderboards once it clears +0.5%.
DEFAULT_WIN_THRESHOLD = 0.5
WEEKDAY_ROWS = (
    (1, "Monday"),
    (2, "Tuesday"),
    (3, "Wednesday"),
    (4, "Thursday"),
    (5, "Friday"),
)
MOVE_BINS = (
    ("< 0%", None, 0.0),
    ("0-2%", 0.0, 2.0),
    ("2-5%", 2.0, 5.0),
    ("5-10%", 5.0, 10.0),
    ("> 10%", 10.0, None),
)


@dataclass
class DailyAverage:
    date: date
    avg_return: float
    avg_price: float
    count: int


@dataclass
class PeriodReturn:
    period: str
    total_return: float


@dataclass
class TopPeriods:
    days: List[PeriodReturn] = field(default_factory=list)
    weeks: List[PeriodReturn] = field(default_factory=list)
    months: List[PeriodReturn] = field(default_factory=list)


@dataclass
class GroupStats:
    name: str
    count: int = 0
    avg_return: float = 0.0
    win_rate: float = 0.0


@dataclass
class MoveBin:
    name: str
    count: int = 0


def daily_averages(trades: Iterable[Trade], tp: float, sl: Optional[float]) -> List[DailyAverage]:
    """Per-day mean clamped return and mean entry price, ascending by date."""
    acc: Dict[date, List[float]] = {}
    for trade in trades:
        row = acc.setdefault(trade.date, [0.0, 0.0, 0.0])
        row[0] += classify(trade.raw_return, tp, sl).clamped_return
        row[1] += trade.price or 0.0
        row[2] += 1
    return [
        DailyAverage(
            date=day,
            avg_return=safe_div(total, count),
            avg_price=safe_div(price, count),
            count=int(count),
        )
        for day, (total, price, count) in sorted(acc.items())
    ]


def as_lookup(averages: Iterable[DailyAverage]) -> Dict[date, float]:
    return {row.date: row.avg_return for row in averages}


def _week_start(day: date) -> date:
    # Weeks start on Sunday.
    return day - timedelta(days=day.isoweekday() % 7)


def _top(totals: Dict[str, float], limit: int) -> List[PeriodReturn]:
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    return [PeriodReturn(period=k, total_return=v) for k, v in ranked[:limit]]


def top_periods(points: Iterable[DailyEquityPoint], limit: int = 5) -> TopPeriods:
    days: Dict[str, float] = {}
    weeks: Dict[str, float] = {}
    months: Dict[str, float] = {}
    for point in points:
        ret = point.total_clamped_return
        days[point.date.isoformat()] = days.get(point.date.isoformat(), 0.0) + ret
        week_key = _week_start(point.date).isoformat()
        weeks[week_key] = weeks.get(week_key, 0.0) + ret
        month_key = point.date.strftime("%Y-%m")
        months[month_key] = months.get(month_key, 0.0) + ret
    return TopPeriods(days=_top(days, limit), weeks=_top(weeks, limit), months=_top(months, limit))


def _group(
    classified: Iterable[ClassifiedTrade],
    key: Callable[[ClassifiedTrade], str],
    win_threshold: float,
) -> Dict[str, GroupStats]:
    totals: Dict[str, float] = {}
    groups: Dict[str, GroupStats] = {}
    wins: Dict[str, int] = {}
    for item in classified:
        name = key(item)
        stats = groups.setdefault(name, GroupStats(name=name))
        stats.count += 1
        totals[name] = totals.get(name, 0.0) + item.clamped_return
        if item.clamped_return >= win_threshold:
            wins[name] = wins.get(name, 0) + 1
    for name, stats in groups.items():
        stats.avg_return = safe_div(totals[name], stats.count)
        stats.win_rate = safe_div(wins.get(name, 0), stats.count)
    return groups


def weekday_seasonality(
    classified: Iterable[ClassifiedTrade],
    win_threshold: float = DEFAULT_WIN_THRESHOLD,
) -> List[GroupStats]:
    """Monday..Friday rows; weekdays with no trades report zeros."""
    names = dict(WEEKDAY_ROWS)
    groups = _group(
        classified,
        lambda item: names.get(item.trade.weekday, "Weekend"),
        win_threshold,
    )
    return [groups.get(name) or GroupStats(name=name) for _, name in WEEKDAY_ROWS]


def leaderboard(
    classified: Iterable[ClassifiedTrade],
    key: str = "ticker",
    limit: int = 10,
    sort_by: str = "count",
    win_threshold: float = DEFAULT_WIN_THRESHOLD,
) -> List[GroupStats]:
    """Per-ticker or per-sector stats, sorted by `count` or `avg_return`."""
    if key not in ("ticker", "sector"):
        raise ValueError(f"unsupported leaderboard key: {key!r}")
    if sort_by not in ("count", "avg_return", "win_rate"):
        raise ValueError(f"unsupported leaderboard sort: {sort_by!r}")
    groups = _group(
        classified,
        lambda item: str(getattr(item.trade, key) or "Unknown"),
        win_threshold,
    )
    ranked = sorted(groups.values(), key=lambda g: (-getattr(g, sort_by), g.name))
    return ranked[: max(0, int(limit))]


def move_distribution(trades: Iterable[Trade]) -> List[MoveBin]:
    """Histogram of raw returns."""
    bins = [MoveBin(name=name) for name, _, _ in MOVE_BINS]
    for trade in trades:
        raw = trade.raw_return
        for idx, (_, lo, hi) in enumerate(MOVE_BINS):
            if (lo is None or raw >= lo) and (hi is None or raw < hi):
                bins[idx].count += 1
                break
    return bins
