#!/usr/bin/env python3
"""Working-set filters applied once before any analytics run."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from trade_models import Trade

DateRange = Tuple[Optional[date], Optional[date]]

TIME_RANGE_PRESETS = ("1W", "1M", "3M", "YTD", "1Y", "ALL")


@dataclass(frozen=True)
class TradeFilters:
    min_volume: float = 0.0
    min_price: float = 0.0
    min_probability: float = 0.0
    date_range: Optional[DateRange] = None

    def accepts(self, trade: Trade) -> bool:
        if (trade.volume or 0.0) < self.min_volume:
            return False
        if (trade.price or 0.0) < self.min_price:
            return False
        # Missing probability is read as the default (70), same as bucketing.
        if trade.effective_probability < self.min_probability:
            return False
        return in_date_range(trade.date, self.date_range)


def in_date_range(day: date, date_range: Optional[DateRange]) -> bool:
    """Inclusive on both ends; either end may be open (None)."""
    if not date_range:
        return True
    start, end = date_range
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def apply_filters(trades: Iterable[Trade], filters: Optional[TradeFilters] = None) -> List[Trade]:
    if filters is None:
        return list(trades)
    return [t for t in trades if filters.accepts(t)]


def _sub_months(day: date, months: int) -> date:
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def resolve_time_range(preset: str, today: date) -> Optional[DateRange]:
    """Translate a dashboard range preset into an explicit date range."""
    key = str(preset or "ALL").strip().upper()
    if key == "1W":
        start = today - timedelta(weeks=1)
    elif key == "1M":
        start = _sub_months(today, 1)
    elif key == "3M":
        start = _sub_months(today, 3)
    elif key == "YTD":
        start = date(today.year, 1, 1)
    elif key == "1Y":
        start = _sub_months(today, 12)
    elif key == "ALL":
        return None
    else:
        raise ValueError(f"unknown time range preset: {preset!r}")
    return (start, today)
