#!/usr/bin/env python3
"""config_env YAML-first guard regressions."""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config_env import apply_env_overrides


def _set_env(updates: dict[str, str | None]) -> dict[str, str | None]:
    prev: dict[str, str | None] = {}
    for key, value in updates.items():
        prev[key] = os.environ.get(key)
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
    return prev


def _restore_env(prev: dict[str, str | None]) -> None:
    for key, value in prev.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value


def test_non_whitelisted_env_is_ignored() -> None:
    cfg = {"config": {"analysis": {"take_profit_pct": 5.0}}}
    prev = _set_env({"BIDSCOPE_TAKE_PROFIT": "9"})
    try:
        out = apply_env_overrides(cfg)
    finally:
        _restore_env(prev)

    assert out["config"]["analysis"]["take_profit_pct"] == 5.0


def test_whitelisted_env_overrides_apply_with_types() -> None:
    cfg = {"config": {"grid": {"max_workers": 1, "max_sl_tolerance_pct": 12.0}}}
    prev = _set_env(
        {
            "BIDSCOPE_GRID_MAX_WORKERS": "4",
            "BIDSCOPE_GRID_MAX_SL_TOLERANCE": "3.5",
            "BIDSCOPE_VOLUME_EDGES": "1000000,3000000",
            "BIDSCOPE_TIME_RANGE": "ytd",
        }
    )
    try:
        out = apply_env_overrides(cfg)
    finally:
        _restore_env(prev)

    assert out["config"]["grid"]["max_workers"] == 4
    assert out["config"]["grid"]["max_sl_tolerance_pct"] == 3.5
    assert out["config"]["volume"]["edges"] == ["1000000", "3000000"]
    assert out["config"]["analysis"]["time_range"] == "ytd"


def test_blank_env_values_do_not_override() -> None:
    cfg = {"config": {"buckets": {"high_conviction_threshold_pct": 0.5}}}
    prev = _set_env({"BIDSCOPE_HIGH_CONVICTION_THRESHOLD": "  "})
    try:
        out = apply_env_overrides(cfg)
    finally:
        _restore_env(prev)

    assert out["config"]["buckets"]["high_conviction_threshold_pct"] == 0.5


def test_overrides_do_not_mutate_input() -> None:
    cfg = {"config": {"db_path": "a.db"}}
    prev = _set_env({"BIDSCOPE_DB_PATH": "/tmp/b.db"})
    try:
        out = apply_env_overrides(cfg)
    finally:
        _restore_env(prev)

    assert out["config"]["db_path"] == "/tmp/b.db"
    assert cfg["config"]["db_path"] == "a.db"


def test_use_clamped_env_parses_as_bool() -> None:
    cfg = {"config": {"analysis": {"use_clamped": True}}}
    prev = _set_env({"BIDSCOPE_USE_CLAMPED": "off"})
    try:
        out = apply_env_overrides(cfg)
    finally:
        _restore_env(prev)

    assert out["config"]["analysis"]["use_clamped"] is False


def test_unparseable_bool_env_keeps_yaml_value() -> None:
    cfg = {"config": {"analysis": {"use_clamped": True}}}
    prev = _set_env({"BIDSCOPE_USE_CLAMPED": "maybe"})
    try:
        out = apply_env_overrides(cfg)
    finally:
        _restore_env(prev)

    assert out["config"]["analysis"]["use_clamped"] is True
