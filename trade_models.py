#!/usr/bin/env python3
"""
Record types shared by the backtest analytics modules.

Trades are immutable inputs; everything else here is a derived, plain-data
result that can be handed to `to_jsonable` and serialized as-is.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

# Policy constants carried over from the recommendation dashboard.
DEFAULT_PROBABILITY = 70.0
DEFAULT_SECTOR = "Unknown"

# Legacy wire sentinel: an SL of 100% or more can never trigger.
STOP_LOSS_OFF_PCT = 100.0
# SL "off" is an explicit tagged value, never a magic number.
SL_DISABLED: Optional[float] = None

_OFF_WORDS = {"off", "none", "disabled", "no", "false", ""}


class Outcome(str, Enum):
    HIT_TP = "hitTP"
    HIT_SL = "hitSL"
    OTHER = "other"


def _safe_float(value: Any, default: Optional[float] = 0.0) -> Optional[float]:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(out):
        return default
    return out


def safe_div(numer: float, denom: float, fallback: float = 0.0) -> float:
    """Ratio with an explicit zero-denominator policy (never NaN/inf)."""
    if not denom:
        return float(fallback)
    return float(numer) / float(denom)


def normalize_stop_loss(value: Any) -> Optional[float]:
    """Map boundary SL input to a float stop or SL_DISABLED.

    Accepts None/False/"off" and the legacy numeric sentinel (>= 100).
    """
    if value is None or value is False:
        return SL_DISABLED
    if isinstance(value, str) and value.strip().lower() in _OFF_WORDS:
        return SL_DISABLED
    sl = _safe_float(value, None)
    if sl is None or sl >= STOP_LOSS_OFF_PCT:
        return SL_DISABLED
    return sl


def coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    if not raw:
        raise ValueError("missing trade date")
    # Accept full ISO timestamps; only the calendar day is used.
    return date.fromisoformat(raw[:10])


@dataclass(frozen=True)
class Trade:
    """One recommendation outcome as supplied by the trade store."""

    date: date
    raw_return: float
    probability: Optional[float] = None
    volume: float = 0.0
    price: float = 0.0
    sector: str = DEFAULT_SECTOR
    ticker: str = ""

    @property
    def effective_probability(self) -> float:
        prob = _safe_float(self.probability, None)
        return DEFAULT_PROBABILITY if prob is None else prob

    @property
    def weekday(self) -> int:
        """Day of week with 0=Sunday .. 6=Saturday."""
        return self.date.isoweekday() % 7

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "Trade":
        raw_return = _safe_float(row.get("raw_return", row.get("rawReturn")), None)
        if raw_return is None:
            raise ValueError(f"unusable raw_return: {row.get('raw_return', row.get('rawReturn'))!r}")
        ticker = str(row.get("ticker") or row.get("symbol") or "").strip().upper()
        return cls(
            date=coerce_date(row.get("date")),
            raw_return=raw_return,
            probability=_safe_float(row.get("probability"), None),
            volume=_safe_float(row.get("volume"), 0.0) or 0.0,
            price=_safe_float(row.get("price"), 0.0) or 0.0,
            sector=str(row.get("sector") or DEFAULT_SECTOR),
            ticker=ticker,
        )


@dataclass(frozen=True)
class Classification:
    clamped_return: float
    outcome: Outcome


@dataclass(frozen=True)
class ClassifiedTrade:
    trade: Trade
    clamped_return: float
    outcome: Outcome

    @property
    def is_win(self) -> bool:
        return self.clamped_return > 0


@dataclass
class DailyEquityPoint:
    date: date
    total_raw_return: float = 0.0
    total_clamped_return: float = 0.0
    trade_count: int = 0
    hit_tp: int = 0
    hit_sl: int = 0
    other: int = 0
    cumulative_raw_equity: float = 0.0
    cumulative_clamped_equity: float = 0.0
    drawdown: float = 0.0
    avg_return_of_day: float = 0.0


@dataclass
class DistributionStats:
    mean: float = 0.0
    min: float = 0.0
    q1: float = 0.0
    median: float = 0.0
    q3: float = 0.0
    max: float = 0.0


@dataclass
class ProbabilityBucket:
    label: str
    min_probability: float
    max_probability: Optional[float]
    count: int = 0
    values: List[float] = field(default_factory=list)
    high_conviction_values: List[float] = field(default_factory=list)
    high_conviction_count: int = 0
    hit_rate: float = 0.0
    stats: DistributionStats = field(default_factory=DistributionStats)


@dataclass
class VolumeSegment:
    label: str
    min_volume: Optional[float]
    max_volume: Optional[float]
    count: int = 0
    values: List[float] = field(default_factory=list)
    high_conviction_values: List[float] = field(default_factory=list)
    high_conviction_count: int = 0
    hit_rate: float = 0.0
    stats: DistributionStats = field(default_factory=DistributionStats)


@dataclass(frozen=True)
class OptimizationCell:
    tp: float
    sl: float
    count: int
    total_return: float
    avg_return: float
    win_rate: float
    profit_factor: float
    efficiency: float


@dataclass
class RiskMetrics:
    trade_count: int = 0
    total_return: float = 0.0
    total_raw_return: float = 0.0
    profit_factor: float = 0.0
    max_drawdown: float = 0.0
    max_win_streak: int = 0
    max_loss_streak: int = 0
    best_weekday: Optional[int] = None
    best_weekday_name: Optional[str] = None
    best_weekday_win_rate: float = 0.0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    avg_r: float = 0.0
    expectancy: float = 0.0
    reliability: str = "Low"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_jsonable(value: Any, *, camel_case: bool = False) -> Any:
    """Convert result records (and containers of them) into JSON-ready data."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        out: Dict[str, Any] = {}
        for f in fields(value):
            key = _camel(f.name) if camel_case else f.name
            out[key] = to_jsonable(getattr(value, f.name), camel_case=camel_case)
        return out
    if isinstance(value, Mapping):
        return {
            str(k): to_jsonable(v, camel_case=camel_case)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v, camel_case=camel_case) for v in value]
    if isinstance(value, float) and not math.isfinite(value):
        return 0.0
    return value
