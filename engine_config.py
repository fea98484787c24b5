#!/usr/bin/env python3
"""Typed analytics configuration resolved from bidscope.yaml + env overrides."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from config_env import apply_env_overrides
from env_utils import BIDSCOPE_CONFIG_PATH, BIDSCOPE_DB_PATH, BIDSCOPE_ROOT
from logging_utils import get_logger
from trade_filters import TIME_RANGE_PRESETS
from trade_models import normalize_stop_loss
from volume_segments import DEFAULT_VOLUME_EDGES

LOG = get_logger("engine_config")


def _safe_float(value: Any, default: float) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return float(default)
    if not math.isfinite(out):
        return float(default)
    return out


def _safe_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(default)


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = cfg.get(name) or {}
    return section if isinstance(section, dict) else {}


def load_raw_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Read the YAML file and apply whitelisted env overrides."""
    cfg_path = Path(path or BIDSCOPE_CONFIG_PATH or "")
    raw: Dict[str, Any] = {}
    if cfg_path.is_file():
        try:
            with cfg_path.open("r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                raw = loaded
            else:
                LOG.warning("config %s is not a mapping; using defaults", cfg_path)
        except (OSError, yaml.YAMLError) as exc:
            LOG.warning("failed to read config %s: %s; using defaults", cfg_path, exc)
    return apply_env_overrides(raw)


def _parse_edges(value: Any) -> Tuple[float, ...]:
    if not isinstance(value, (list, tuple)):
        return DEFAULT_VOLUME_EDGES
    edges = []
    for item in value:
        parsed = _safe_float(item, float("nan"))
        if math.isfinite(parsed):
            edges.append(parsed)
    return tuple(sorted(set(edges))) or DEFAULT_VOLUME_EDGES


def _resolve_db_path(value: Any) -> str:
    raw = str(value or "").strip()
    if not raw:
        return str(BIDSCOPE_DB_PATH)
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = Path(BIDSCOPE_ROOT) / path
    return str(path)


@dataclass(frozen=True)
class EngineConfig:
    """Defaults for one analysis run; every field has a safe fallback."""

    db_path: str = str(BIDSCOPE_DB_PATH)
    take_profit: float = 5.0
    stop_loss: Optional[float] = None
    min_volume: float = 0.0
    min_price: float = 0.0
    min_probability: float = 0.0
    use_clamped: bool = True
    time_range: str = "ALL"
    high_conviction_threshold: float = 0.5
    volume_edges: Tuple[float, ...] = field(default_factory=lambda: DEFAULT_VOLUME_EDGES)
    volume_hit_threshold: float = 5.0
    grid_start: float = 0.5
    grid_stop: float = 12.0
    grid_step: float = 0.5
    max_sl_tolerance: float = 12.0
    target_tp: float = 5.0
    max_workers: int = 1
    top_n: int = 5
    leaderboard_size: int = 10
    seasonality_win_threshold: float = 0.5

    @classmethod
    def from_mapping(cls, raw: Dict[str, Any]) -> "EngineConfig":
        cfg = raw.get("config") if isinstance(raw, dict) else None
        if not isinstance(cfg, dict):
            cfg = {}
        analysis = _section(cfg, "analysis")
        buckets = _section(cfg, "buckets")
        volume = _section(cfg, "volume")
        grid = _section(cfg, "grid")
        report = _section(cfg, "report")
        base = cls()

        time_range = str(analysis.get("time_range") or base.time_range).strip().upper()
        if time_range not in TIME_RANGE_PRESETS:
            LOG.warning("unknown time_range %r; falling back to ALL", time_range)
            time_range = "ALL"

        grid_step = _safe_float(grid.get("step_pct"), base.grid_step)
        if grid_step <= 0:
            grid_step = base.grid_step

        return cls(
            db_path=_resolve_db_path(cfg.get("db_path")),
            take_profit=_safe_float(analysis.get("take_profit_pct"), base.take_profit),
            stop_loss=normalize_stop_loss(analysis.get("stop_loss_pct")),
            min_volume=_safe_float(analysis.get("min_volume"), base.min_volume),
            min_price=_safe_float(analysis.get("min_price"), base.min_price),
            min_probability=_safe_float(analysis.get("min_probability"), base.min_probability),
            use_clamped=bool(analysis.get("use_clamped", base.use_clamped)),
            time_range=time_range,
            high_conviction_threshold=_safe_float(
                buckets.get("high_conviction_threshold_pct"), base.high_conviction_threshold
            ),
            volume_edges=_parse_edges(volume.get("edges")),
            volume_hit_threshold=_safe_float(volume.get("hit_threshold_pct"), base.volume_hit_threshold),
            grid_start=_safe_float(grid.get("start_pct"), base.grid_start),
            grid_stop=_safe_float(grid.get("stop_pct"), base.grid_stop),
            grid_step=grid_step,
            max_sl_tolerance=_safe_float(grid.get("max_sl_tolerance_pct"), base.max_sl_tolerance),
            target_tp=_safe_float(grid.get("target_tp_pct"), base.target_tp),
            max_workers=max(1, _safe_int(grid.get("max_workers"), base.max_workers)),
            top_n=max(1, _safe_int(report.get("top_n"), base.top_n)),
            leaderboard_size=max(1, _safe_int(report.get("leaderboard_size"), base.leaderboard_size)),
            seasonality_win_threshold=_safe_float(
                report.get("seasonality_win_threshold_pct"), base.seasonality_win_threshold
            ),
        )

    @classmethod
    def load(cls, path: Optional[str] = None) -> "EngineConfig":
        return cls.from_mapping(load_raw_config(path))
