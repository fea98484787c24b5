#!/usr/bin/env python3
"""Return distribution by traded-volume tier."""

from __future__ import annotations

from bisect import bisect_right
from typing import Iterable, List, Optional, Sequence

from distribution_stats import percentile, summarize
from logging_utils import get_logger
from outcome_classifier import classify
from trade_models import Trade, VolumeSegment, safe_div

LOG = get_logger("volume_segments")

DEFAULT_VOLUME_EDGES = (2_000_000.0, 5_000_000.0, 10_000_000.0)
DEFAULT_VOLUME_HIT_THRESHOLD = 5.0


def format_volume(value: float) -> str:
    for scale, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if abs(value) >= scale:
            scaled = value / scale
            text = f"{scaled:.1f}".rstrip("0").rstrip(".")
            return f"{text}{suffix}"
    return f"{value:g}"


def segment_labels(edges: Sequence[float]) -> List[str]:
    if not edges:
        return ["all"]
    labels = [f"<{format_volume(edges[0])}"]
    for lo, hi in zip(edges, edges[1:]):
        labels.append(f"{format_volume(lo)}-{format_volume(hi)}")
    labels.append(f">={format_volume(edges[-1])}")
    return labels


def quantile_edges(trades: Iterable[Trade], tiers: int = 4) -> List[float]:
    """Edges splitting the observed volumes into `tiers` equal-count groups."""
    volumes = [t.volume for t in trades]
    if not volumes or tiers < 2:
        return []
    edges = [percentile(volumes, 100.0 * i / tiers) for i in range(1, tiers)]
    return sorted(set(edges))


def segment_by_volume(
    trades: Iterable[Trade],
    edges: Sequence[float] = DEFAULT_VOLUME_EDGES,
    tp: Optional[float] = None,
    sl: Optional[float] = None,
    *,
    use_clamped: bool = False,
    high_conviction_threshold: float = DEFAULT_VOLUME_HIT_THRESHOLD,
) -> List[VolumeSegment]:
    """Bucket trades into volume tiers.

    Values are raw returns unless `use_clamped` is set (which needs `tp`).
    Trades without volume land in the lowest tier.
    """
    ordered_edges = sorted(float(e) for e in edges)
    bounds: List[Optional[float]] = [None, *ordered_edges, None]
    segments = [
        VolumeSegment(label=label, min_volume=bounds[i], max_volume=bounds[i + 1])
        for i, label in enumerate(segment_labels(ordered_edges))
    ]
    clamp = use_clamped and tp is not None
    if use_clamped and tp is None:
        LOG.warning("use_clamped requested without a take-profit; segmenting raw returns")

    for trade in trades:
        segment = segments[bisect_right(ordered_edges, trade.volume or 0.0)]
        value = classify(trade.raw_return, tp, sl).clamped_return if clamp else trade.raw_return
        segment.values.append(value)
        if trade.raw_return >= high_conviction_threshold:
            segment.high_conviction_values.append(value)

    for segment in segments:
        segment.count = len(segment.values)
        segment.high_conviction_count = len(segment.high_conviction_values)
        segment.hit_rate = safe_div(segment.high_conviction_count, segment.count)
        segment.stats = summarize(segment.values)
    return segments
