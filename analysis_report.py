#!/usr/bin/env python3
"""
Backtest analysis report.

Runs every analytics component over one filtered working set and returns
a JSON-ready dict. The command-line entry point loads the recommendations
from the sqlite store and prints that dict.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Sequence

from engine_config import EngineConfig
from equity_curve import build
from logging_utils import get_logger, setup_logging
from period_stats import (
    as_lookup,
    daily_averages,
    leaderboard,
    move_distribution,
    top_periods,
    weekday_seasonality,
)
from probability_buckets import DEFAULT_HIGH_CONVICTION_THRESHOLD, bucketize
from risk_metrics import compute_risk_metrics
from tpsl_optimizer import OptimizationGrid, build_range
from trade_filters import DateRange, TradeFilters, apply_filters, resolve_time_range
from trade_models import Trade, coerce_date, normalize_stop_loss, to_jsonable
from trade_store import TradeStore
from volume_segments import DEFAULT_VOLUME_EDGES, DEFAULT_VOLUME_HIT_THRESHOLD, segment_by_volume

LOG = get_logger("analysis_report")

# Loggers configured by one report run.
REPORT_LOGGERS = (
    "analysis_report",
    "config_env",
    "engine_config",
    "equity_curve",
    "tpsl_optimizer",
    "trade_store",
    "volume_segments",
)


@dataclass(frozen=True)
class AnalysisParams:
    """Parameter bundle for one analysis run (percentages throughout)."""

    tp: float = 5.0
    sl: Optional[float] = None
    min_volume: float = 0.0
    min_price: float = 0.0
    min_probability: float = 0.0
    date_range: Optional[DateRange] = None
    high_conviction_threshold: float = DEFAULT_HIGH_CONVICTION_THRESHOLD
    max_sl_tolerance: float = 12.0
    use_clamped: bool = True
    volume_edges: Sequence[float] = DEFAULT_VOLUME_EDGES
    volume_hit_threshold: float = DEFAULT_VOLUME_HIT_THRESHOLD
    target_tp: float = 5.0
    tp_range: Sequence[float] = field(default_factory=lambda: build_range(0.5, 12.0, 0.5))
    sl_range: Sequence[float] = field(default_factory=lambda: build_range(0.5, 12.0, 0.5))
    max_workers: int = 1
    top_n: int = 5
    leaderboard_size: int = 10
    seasonality_win_threshold: float = 0.5

    def __post_init__(self) -> None:
        # Legacy callers pass sl=100 for "no stop".
        object.__setattr__(self, "sl", normalize_stop_loss(self.sl))

    @property
    def filters(self) -> TradeFilters:
        return TradeFilters(
            min_volume=self.min_volume,
            min_price=self.min_price,
            min_probability=self.min_probability,
            date_range=self.date_range,
        )

    @classmethod
    def from_config(cls, cfg: EngineConfig, today: Optional[date] = None) -> "AnalysisParams":
        grid = build_range(cfg.grid_start, cfg.grid_stop, cfg.grid_step)
        return cls(
            tp=cfg.take_profit,
            sl=cfg.stop_loss,
            min_volume=cfg.min_volume,
            min_price=cfg.min_price,
            min_probability=cfg.min_probability,
            date_range=resolve_time_range(cfg.time_range, today or date.today()),
            high_conviction_threshold=cfg.high_conviction_threshold,
            max_sl_tolerance=cfg.max_sl_tolerance,
            use_clamped=cfg.use_clamped,
            volume_edges=tuple(cfg.volume_edges),
            volume_hit_threshold=cfg.volume_hit_threshold,
            target_tp=cfg.target_tp,
            tp_range=grid,
            sl_range=list(grid),
            max_workers=cfg.max_workers,
            top_n=cfg.top_n,
            leaderboard_size=cfg.leaderboard_size,
            seasonality_win_threshold=cfg.seasonality_win_threshold,
        )


def run_analysis(trades: Iterable[Trade], params: AnalysisParams) -> Dict[str, Any]:
    """Filter once, then run every analytics component on that working set."""
    working: List[Trade] = apply_filters(trades, params.filters)
    LOG.debug("analysis working set: %d trades", len(working))

    averages = daily_averages(working, params.tp, params.sl)
    curve = build(working, params.tp, params.sl, daily_averages=as_lookup(averages))
    metrics = compute_risk_metrics(curve)
    buckets = bucketize(
        working,
        params.tp,
        params.sl,
        use_clamped=params.use_clamped,
        high_conviction_threshold=params.high_conviction_threshold,
    )
    segments = segment_by_volume(
        working,
        params.volume_edges,
        params.tp,
        params.sl,
        high_conviction_threshold=params.volume_hit_threshold,
    )
    grid = OptimizationGrid.compute(
        working,
        params.tp_range,
        params.sl_range,
        params.max_sl_tolerance,
        max_workers=params.max_workers,
    )

    report = {
        "params": {
            "tp": params.tp,
            "sl": "off" if params.sl is None else params.sl,
            "min_volume": params.min_volume,
            "min_price": params.min_price,
            "min_probability": params.min_probability,
            "date_range": list(params.date_range) if params.date_range else None,
            "high_conviction_threshold": params.high_conviction_threshold,
            "max_sl_tolerance": params.max_sl_tolerance,
            "use_clamped": params.use_clamped,
        },
        "trade_count": len(working),
        "equity_curve": curve.points,
        "risk_metrics": metrics,
        "daily_averages": averages,
        "probability_buckets": buckets,
        "volume_segments": segments,
        "optimization": {
            "tp_range": grid.tp_range,
            "sl_range": grid.sl_range,
            "cells": grid.cells,
            "best": grid.best(),
            "best_for_target_tp": grid.best_for_tp(params.target_tp),
            "target_tp_curve": grid.sl_curve(params.target_tp),
            "recommendations": grid.best_per_tp(),
        },
        "top_periods": top_periods(curve.points, limit=params.top_n),
        "seasonality": weekday_seasonality(curve.classified, params.seasonality_win_threshold),
        "distribution": move_distribution(working),
        "top_tickers": leaderboard(
            curve.classified,
            key="ticker",
            limit=params.leaderboard_size,
            win_threshold=params.seasonality_win_threshold,
        ),
        "top_sectors": leaderboard(
            curve.classified,
            key="sector",
            limit=params.top_n,
            sort_by="avg_return",
            win_threshold=params.seasonality_win_threshold,
        ),
    }
    return to_jsonable(report)


def _parse_date(value: str) -> date:
    try:
        return coerce_date(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}: {exc}") from exc


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recommendation backtest analysis report")
    parser.add_argument("--config", default=None, help="Path to bidscope.yaml")
    parser.add_argument("--db-path", default=None, help="SQLite DB path (overrides config)")
    parser.add_argument("--tp", type=float, default=None, help="Take profit in percent")
    parser.add_argument("--sl", default=None, help="Stop loss in percent, or 'off'")
    parser.add_argument("--min-volume", type=float, default=None)
    parser.add_argument("--min-price", type=float, default=None)
    parser.add_argument("--min-prob", type=float, default=None)
    parser.add_argument("--start", type=_parse_date, default=None, help="First date (YYYY-MM-DD)")
    parser.add_argument("--end", type=_parse_date, default=None, help="Last date (YYYY-MM-DD)")
    parser.add_argument("--range", dest="time_range", default=None, help="1W, 1M, 3M, YTD, 1Y or ALL")
    parser.add_argument("--mvso", type=float, default=None, help="High-conviction raw return threshold")
    parser.add_argument("--max-sl", type=float, default=None, help="Max SL tolerance for the grid")
    parser.add_argument("--target-tp", type=float, default=None)
    parser.add_argument("--raw", action="store_true", help="Bucket raw returns instead of clamped")
    parser.add_argument("--workers", type=int, default=None, help="Grid worker threads")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON")
    return parser.parse_args(argv)


def params_from_args(args: argparse.Namespace, cfg: EngineConfig, today: Optional[date] = None) -> AnalysisParams:
    today = today or date.today()
    params = AnalysisParams.from_config(cfg, today=today)
    updates: Dict[str, Any] = {}
    if args.tp is not None:
        updates["tp"] = float(args.tp)
    if args.sl is not None:
        updates["sl"] = normalize_stop_loss(args.sl)
    if args.min_volume is not None:
        updates["min_volume"] = float(args.min_volume)
    if args.min_price is not None:
        updates["min_price"] = float(args.min_price)
    if args.min_prob is not None:
        updates["min_probability"] = float(args.min_prob)
    if args.time_range is not None:
        try:
            updates["date_range"] = resolve_time_range(args.time_range, today)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
    if args.start is not None or args.end is not None:
        updates["date_range"] = (args.start, args.end)
    if args.mvso is not None:
        updates["high_conviction_threshold"] = float(args.mvso)
    if args.max_sl is not None:
        updates["max_sl_tolerance"] = float(args.max_sl)
    if args.target_tp is not None:
        updates["target_tp"] = float(args.target_tp)
    if args.raw:
        updates["use_clamped"] = False
    if args.workers is not None:
        updates["max_workers"] = max(1, int(args.workers))
    return replace(params, **updates)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    for name in REPORT_LOGGERS:
        setup_logging(name, log_file=args.log_file, verbose=bool(args.verbose))
    cfg = EngineConfig.load(args.config)
    params = params_from_args(args, cfg)

    store = TradeStore(args.db_path or cfg.db_path)
    trades = store.list(date_range=params.date_range)
    LOG.info("loaded %d recommendations from %s", len(trades), store.db_path)

    report = run_analysis(trades, params)
    if bool(args.pretty):
        print(json.dumps(report, indent=2, sort_keys=True))
    else:
        print(json.dumps(report, separators=(",", ":"), sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
