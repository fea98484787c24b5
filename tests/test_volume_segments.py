#!/usr/bin/env python3
"""Volume tier segmentation tests."""

import logging
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from trade_models import Trade
from volume_segments import format_volume, quantile_edges, segment_by_volume, segment_labels

D = date(2024, 3, 4)


def _t(raw: float, volume: float) -> Trade:
    return Trade(date=D, raw_return=raw, volume=volume)


def test_default_tier_labels() -> None:
    assert segment_labels([2_000_000, 5_000_000, 10_000_000]) == ["<2M", "2M-5M", "5M-10M", ">=10M"]
    assert format_volume(2_500_000) == "2.5M"
    assert format_volume(750) == "750"
    assert format_volume(1_200) == "1.2K"


def test_trades_land_in_half_open_tiers() -> None:
    trades = [
        _t(1.0, 0.0),
        _t(6.0, 1_999_999),
        _t(5.0, 2_000_000),
        _t(-1.0, 7_000_000),
        _t(12.0, 10_000_000),
        _t(2.0, 50_000_000),
    ]
    segments = segment_by_volume(trades, [2_000_000, 5_000_000, 10_000_000])
    assert [s.count for s in segments] == [2, 1, 1, 2]
    assert segments[0].min_volume is None
    assert segments[0].max_volume == 2_000_000
    assert segments[-1].max_volume is None
    # Default hit rule: raw return reached +5%.
    assert segments[0].hit_rate == pytest.approx(0.5)
    assert segments[1].hit_rate == pytest.approx(1.0)
    assert segments[2].hit_rate == 0.0
    assert segments[3].values == [12.0, 2.0]


def test_clamped_values_when_requested() -> None:
    trades = [_t(9.0, 100.0), _t(-9.0, 100.0)]
    seg = segment_by_volume(trades, [1_000.0], tp=2.0, sl=3.0, use_clamped=True)[0]
    assert seg.values == [2.0, -3.0]
    assert seg.high_conviction_count == 1


def test_empty_segments_are_zeroed() -> None:
    segments = segment_by_volume([], [1.0, 2.0])
    assert len(segments) == 3
    assert all(s.count == 0 and s.values == [] and s.hit_rate == 0.0 for s in segments)


def test_quantile_edges_split_observed_volumes() -> None:
    trades = [_t(0.0, v) for v in (1.0, 2.0, 3.0, 4.0, 5.0)]
    assert quantile_edges(trades, tiers=2) == [3.0]
    assert quantile_edges(trades, tiers=4) == [2.0, 3.0, 4.0]
    assert quantile_edges([], tiers=4) == []


def test_clamping_without_take_profit_warns_and_keeps_raw(caplog) -> None:
    trades = [_t(9.0, 100.0), _t(-9.0, 100.0)]
    with caplog.at_level(logging.WARNING, logger="volume_segments"):
        seg = segment_by_volume(trades, [1_000.0], sl=3.0, use_clamped=True)[0]
    assert seg.values == [9.0, -9.0]
    assert "without a take-profit" in caplog.text
