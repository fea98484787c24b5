"""Apply env overrides to bidscope.yaml config."""

from __future__ import annotations

from copy import deepcopy
import os
from typing import Any, Dict, Tuple

from env_utils import (
    env_present,
    env_str,
    env_int,
    env_float,
    env_bool,
    env_list,
)
from logging_utils import get_logger


PathKey = Tuple[str, ...]

LOG = get_logger("config_env")

# Keep env overrides focused on runtime plumbing and the few knobs a
# deployment needs to flip without editing the YAML.
ALLOWED_ENV_OVERRIDES = {
    "BIDSCOPE_DB_PATH",
    "BIDSCOPE_GRID_MAX_WORKERS",
    "BIDSCOPE_GRID_MAX_SL_TOLERANCE",
    "BIDSCOPE_HIGH_CONVICTION_THRESHOLD",
    "BIDSCOPE_VOLUME_EDGES",
    "BIDSCOPE_TIME_RANGE",
    "BIDSCOPE_USE_CLAMPED",
}

# Process-level env that is not a config override.
_NON_OVERRIDE_ENV = {
    "BIDSCOPE_ROOT",
    "BIDSCOPE_CONFIG_PATH",
    "BIDSCOPE_LOG_LEVEL",
}

_WARNED_IGNORED_ENV_OVERRIDES = False


def _warn_ignored_env_overrides_once(names: set[str]) -> None:
    global _WARNED_IGNORED_ENV_OVERRIDES
    if _WARNED_IGNORED_ENV_OVERRIDES or not names:
        return
    sorted_names = sorted(names)
    preview = ", ".join(sorted_names[:12])
    extra = len(sorted_names) - 12
    if extra > 0:
        preview = f"{preview}, +{extra} more"
    LOG.warning(
        "ignoring non-whitelisted BIDSCOPE env overrides (YAML-first mode): %s",
        preview,
    )
    _WARNED_IGNORED_ENV_OVERRIDES = True


def _get_path(cfg: Dict[str, Any], path: PathKey, default: Any = None) -> Any:
    cur: Any = cfg
    for key in path:
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur[key]
    return cur


def _set_path(cfg: Dict[str, Any], path: PathKey, value: Any) -> None:
    cur: Any = cfg
    for key in path[:-1]:
        if key not in cur or not isinstance(cur[key], dict):
            cur[key] = {}
        cur = cur[key]
    cur[path[-1]] = value


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    cfg = deepcopy(config) if config else {}

    def override(path: PathKey, env_name: str, kind: str = "str") -> None:
        if not env_present(env_name):
            return
        default = _get_path(cfg, path)
        if kind == "int":
            value = env_int(env_name, default if isinstance(default, int) else 0)
        elif kind == "float":
            value = env_float(env_name, float(default) if isinstance(default, (int, float)) else 0.0)
        elif kind == "bool":
            value = env_bool(env_name, bool(default) if default is not None else False)
        elif kind == "list":
            value = env_list(env_name, default if isinstance(default, list) else [])
        else:
            value = env_str(env_name, default if default is not None else "")
        _set_path(cfg, path, value)

    override(("config", "db_path"), "BIDSCOPE_DB_PATH")
    override(("config", "analysis", "time_range"), "BIDSCOPE_TIME_RANGE")
    override(("config", "analysis", "use_clamped"), "BIDSCOPE_USE_CLAMPED", kind="bool")
    override(("config", "grid", "max_workers"), "BIDSCOPE_GRID_MAX_WORKERS", kind="int")
    override(("config", "grid", "max_sl_tolerance_pct"), "BIDSCOPE_GRID_MAX_SL_TOLERANCE", kind="float")
    override(
        ("config", "buckets", "high_conviction_threshold_pct"),
        "BIDSCOPE_HIGH_CONVICTION_THRESHOLD",
        kind="float",
    )
    override(("config", "volume", "edges"), "BIDSCOPE_VOLUME_EDGES", kind="list")

    ignored = {
        name
        for name in os.environ
        if name.startswith("BIDSCOPE_")
        and name not in ALLOWED_ENV_OVERRIDES
        and name not in _NON_OVERRIDE_ENV
        and env_present(name)
    }
    _warn_ignored_env_overrides_once(ignored)

    return cfg
