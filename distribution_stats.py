"""Box-plot style summary statistics for return distributions."""

from __future__ import annotations

import math
from typing import List, Sequence

from trade_models import DistributionStats


def percentile(values: Sequence[float], pct: float) -> float:
    """Linear-interpolated percentile (pct in 0..100); 0.0 for no data."""
    if not values:
        return 0.0
    ordered = sorted(values)
    idx = (max(0.0, min(100.0, pct)) / 100.0) * (len(ordered) - 1)
    lower = int(math.floor(idx))
    upper = int(math.ceil(idx))
    if lower == upper:
        return float(ordered[lower])
    return float(ordered[lower] + (ordered[upper] - ordered[lower]) * (idx - lower))


def summarize(values: List[float]) -> DistributionStats:
    if not values:
        return DistributionStats()
    return DistributionStats(
        mean=sum(values) / len(values),
        min=float(min(values)),
        q1=percentile(values, 25),
        median=percentile(values, 50),
        q3=percentile(values, 75),
        max=float(max(values)),
    )
