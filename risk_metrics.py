#!/usr/bin/env python3
"""Risk statistics over a replayed (TP/SL-clamped) equity curve."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List

from equity_curve import EquityCurve
from trade_models import ClassifiedTrade, RiskMetrics, safe_div

# Reliability bands on profit factor (fixed policy, not fitted).
RELIABILITY_HIGH_PF = 1.6
RELIABILITY_MEDIUM_PF = 1.2

WEEKDAY_NAMES = ("SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT")


@dataclass
class ReturnTally:
    """Win/loss accumulation over clamped returns.

    A clamped return of exactly 0 counts as a loss, matching the streak rule.
    """

    count: int = 0
    wins: int = 0
    losses: int = 0
    gross_win: float = 0.0
    gross_loss: float = 0.0
    total: float = 0.0

    def add(self, clamped_return: float) -> None:
        self.count += 1
        self.total += clamped_return
        if clamped_return > 0:
            self.wins += 1
            self.gross_win += clamped_return
        else:
            self.losses += 1
            self.gross_loss += abs(clamped_return)

    @classmethod
    def from_returns(cls, returns: Iterable[float]) -> "ReturnTally":
        tally = cls()
        for value in returns:
            tally.add(value)
        return tally

    @property
    def profit_factor(self) -> float:
        # No losing trades: report gross win so "all wins" stays visible.
        if self.gross_loss == 0:
            return self.gross_win
        return self.gross_win / self.gross_loss

    @property
    def win_rate(self) -> float:
        return safe_div(self.wins, self.count)


def profit_factor(returns: Iterable[float]) -> float:
    return ReturnTally.from_returns(returns).profit_factor


def reliability_label(pf: float) -> str:
    if pf > RELIABILITY_HIGH_PF:
        return "High"
    if pf > RELIABILITY_MEDIUM_PF:
        return "Medium"
    return "Low"


def _best_weekday(classified: List[ClassifiedTrade]):
    if not classified:
        return None, 0.0
    totals = [0.0] * 7
    wins = [0] * 7
    counts = [0] * 7
    for item in classified:
        day = item.trade.weekday
        totals[day] += item.clamped_return
        counts[day] += 1
        if item.is_win:
            wins[day] += 1
    best = 0
    for day in range(1, 7):
        # Strict comparison keeps the lowest weekday index on ties.
        if totals[day] > totals[best]:
            best = day
    return best, safe_div(wins[best], counts[best])


def compute_risk_metrics(curve: EquityCurve) -> RiskMetrics:
    """Recompute every metric from the full replay; nothing is incremental."""
    classified = curve.classified
    tally = ReturnTally.from_returns(item.clamped_return for item in classified)

    avg_win = safe_div(tally.gross_win, tally.wins)
    avg_loss = safe_div(tally.gross_loss, tally.losses)
    avg_r = avg_win / avg_loss if avg_loss > 0 else avg_win
    win_rate = tally.win_rate
    expectancy = win_rate * avg_win - (1.0 - win_rate) * avg_loss
    pf = tally.profit_factor

    best_day, best_day_wr = _best_weekday(classified)

    return RiskMetrics(
        trade_count=tally.count,
        total_return=tally.total,
        total_raw_return=sum((item.trade.raw_return for item in classified), 0.0),
        profit_factor=pf,
        max_drawdown=max((p.drawdown for p in curve.points), default=0.0),
        max_win_streak=curve.max_win_streak,
        max_loss_streak=curve.max_loss_streak,
        best_weekday=best_day,
        best_weekday_name=WEEKDAY_NAMES[best_day] if best_day is not None else None,
        best_weekday_win_rate=best_day_wr,
        win_rate=win_rate,
        avg_win=avg_win,
        avg_loss=avg_loss,
        avg_r=avg_r,
        expectancy=expectancy,
        reliability=reliability_label(pf),
    )
