#!/usr/bin/env python3
"""Take-profit / stop-loss outcome classification for single trades."""

from __future__ import annotations

from typing import Iterable, List, Optional

from trade_models import (
    SL_DISABLED,
    STOP_LOSS_OFF_PCT,
    Classification,
    ClassifiedTrade,
    Outcome,
    Trade,
)


def classify(raw_return: float, tp: float, sl: Optional[float]) -> Classification:
    """Clamp one raw return under a (tp, sl) policy.

    Both tp and sl are positive percentages. `sl` is SL_DISABLED when the
    stop is off, in which case losses pass through unclamped. The legacy
    sentinel (sl >= 100) is read as off as well.
    """
    raw = float(raw_return)
    if raw > 0:
        if raw >= tp:
            return Classification(float(tp), Outcome.HIT_TP)
        return Classification(raw, Outcome.OTHER)

    # raw <= 0 from here; a flat trade is never a TP or SL hit.
    if sl is SL_DISABLED or sl >= STOP_LOSS_OFF_PCT:
        return Classification(raw, Outcome.OTHER)
    if raw <= -sl:
        return Classification(-float(sl), Outcome.HIT_SL)
    return Classification(raw, Outcome.OTHER)


def replay_order(trades: Iterable[Trade]) -> List[Trade]:
    """Chronological replay order: by date, insertion order within a date."""
    return sorted(trades, key=lambda t: t.date)


def classify_trades(trades: Iterable[Trade], tp: float, sl: Optional[float]) -> List[ClassifiedTrade]:
    out: List[ClassifiedTrade] = []
    for trade in replay_order(trades):
        result = classify(trade.raw_return, tp, sl)
        out.append(ClassifiedTrade(trade, result.clamped_return, result.outcome))
    return out
