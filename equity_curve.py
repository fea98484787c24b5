#!/usr/bin/env python3
"""
Equity curve replay for a single TP/SL policy.

Trades are folded day by day into DailyEquityPoint rows. Two cumulative
series are carried side by side:

  - raw equity: the untouched outcomes; peak and drawdown are tracked here
    so the chart shows the real volatility of the recommendations.
  - clamped equity: outcomes after TP/SL capping; risk metrics
    (profit factor, expectancy, streaks) are evaluated on this series.

Do not collapse the two: drawdown is a display quantity, the clamped
series is the hypothetical strategy under evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from logging_utils import get_logger
from outcome_classifier import classify_trades
from trade_models import ClassifiedTrade, DailyEquityPoint, Outcome, Trade

LOG = get_logger("equity_curve")


@dataclass
class EquityCurve:
    points: List[DailyEquityPoint] = field(default_factory=list)
    classified: List[ClassifiedTrade] = field(default_factory=list)
    max_win_streak: int = 0
    max_loss_streak: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.points


@dataclass
class _StreakState:
    win: int = 0
    loss: int = 0
    max_win: int = 0
    max_loss: int = 0

    def push(self, clamped_return: float) -> None:
        if clamped_return > 0:
            self.win += 1
            self.loss = 0
            self.max_win = max(self.max_win, self.win)
        else:
            self.loss += 1
            self.win = 0
            self.max_loss = max(self.max_loss, self.loss)


def _group_by_date(classified: Iterable[ClassifiedTrade]) -> Dict[date, List[ClassifiedTrade]]:
    grouped: Dict[date, List[ClassifiedTrade]] = {}
    for item in classified:
        grouped.setdefault(item.trade.date, []).append(item)
    return grouped


def build(
    trades: Iterable[Trade],
    tp: float,
    sl: Optional[float],
    daily_averages: Optional[Mapping[date, float]] = None,
) -> EquityCurve:
    """Replay trades under (tp, sl) and return the per-day equity curve.

    `daily_averages` is an externally computed per-date average return used
    only to decorate each point; it does not feed any cumulative series.
    """
    classified = classify_trades(trades, tp, sl)
    if not classified:
        return EquityCurve()

    averages: Mapping[date, float] = daily_averages or {}
    streaks = _StreakState()
    points: List[DailyEquityPoint] = []
    cum_raw = 0.0
    cum_clamped = 0.0
    # Baseline of the curve is 0; a losing first day is already a drawdown.
    peak_raw = 0.0

    for day, items in _group_by_date(classified).items():
        point = DailyEquityPoint(date=day)
        counts: Dict[Outcome, int] = {Outcome.HIT_TP: 0, Outcome.HIT_SL: 0, Outcome.OTHER: 0}
        for item in items:
            counts[item.outcome] += 1
            point.total_raw_return += item.trade.raw_return
            point.total_clamped_return += item.clamped_return
            # Streaks follow individual trades, not day totals.
            streaks.push(item.clamped_return)

        point.trade_count = len(items)
        point.hit_tp = counts[Outcome.HIT_TP]
        point.hit_sl = counts[Outcome.HIT_SL]
        point.other = counts[Outcome.OTHER]

        cum_raw += point.total_raw_return
        cum_clamped += point.total_clamped_return
        peak_raw = max(peak_raw, cum_raw)
        point.cumulative_raw_equity = cum_raw
        point.cumulative_clamped_equity = cum_clamped
        point.drawdown = max(peak_raw - cum_raw, 0.0)
        point.avg_return_of_day = float(averages.get(day, 0.0))
        points.append(point)

    LOG.debug(
        "equity curve: %d trades over %d days (tp=%s sl=%s)",
        len(classified),
        len(points),
        tp,
        "off" if sl is None else sl,
    )
    return EquityCurve(
        points=points,
        classified=classified,
        max_win_streak=streaks.max_win,
        max_loss_streak=streaks.max_loss,
    )
