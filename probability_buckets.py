#!/usr/bin/env python3
"""
Probability efficiency buckets.

Trades are split into fixed probability bands. Each band keeps the full
list of returns (raw or clamped) so a box-plot consumer can draw its own
whiskers, plus the subset whose *raw* return reached the high-conviction
threshold. Empty bands mean "not enough data", never "zero return".
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from distribution_stats import summarize
from outcome_classifier import classify
from trade_models import ProbabilityBucket, Trade, safe_div

# [min, max) edges; the top band is open-ended.
PROBABILITY_BANDS: Tuple[Tuple[str, float, Optional[float]], ...] = (
    ("70-75", 70.0, 75.0),
    ("75-80", 75.0, 80.0),
    ("80-85", 80.0, 85.0),
    ("85-90", 85.0, 90.0),
    ("90+", 90.0, None),
)
DEFAULT_HIGH_CONVICTION_THRESHOLD = 0.5


def _band_index(probability: float) -> Optional[int]:
    for idx, (_, lo, hi) in enumerate(PROBABILITY_BANDS):
        if probability >= lo and (hi is None or probability < hi):
            return idx
    return None


def bucketize(
    trades: Iterable[Trade],
    tp: float,
    sl: Optional[float],
    *,
    use_clamped: bool = True,
    high_conviction_threshold: float = DEFAULT_HIGH_CONVICTION_THRESHOLD,
) -> List[ProbabilityBucket]:
    """Group trade returns by probability band.

    Trades below the lowest band (probability < 70) are not reported.
    """
    buckets = [
        ProbabilityBucket(label=label, min_probability=lo, max_probability=hi)
        for label, lo, hi in PROBABILITY_BANDS
    ]
    for trade in trades:
        idx = _band_index(trade.effective_probability)
        if idx is None:
            continue
        value = classify(trade.raw_return, tp, sl).clamped_return if use_clamped else trade.raw_return
        bucket = buckets[idx]
        bucket.values.append(value)
        if trade.raw_return >= high_conviction_threshold:
            bucket.high_conviction_values.append(value)

    for bucket in buckets:
        bucket.count = len(bucket.values)
        bucket.high_conviction_count = len(bucket.high_conviction_values)
        bucket.hit_rate = safe_div(bucket.high_conviction_count, bucket.count)
        bucket.stats = summarize(bucket.values)
    return buckets
