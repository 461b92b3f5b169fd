# ts_platform/config_base.py
# configuration loading and persistence.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Dict, Mapping

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config and state files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in a container that mounts /config)
      3) Project root (one level up from this file)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Remote document (GitHub Gist) ---------------------------------------
    "gist": {
        "token": "",                                    # GitHub token with the "gist" scope
        "gist_id": "",                                  # Primary document, the sync point between devices
        "backup_gist_id": "",                           # Secondary document used by backup / restore only
        "filename": "tracker-data.json",                # File inside the gist holding the snapshot
        "api_base": "https://api.github.com",           # GitHub REST endpoint
        "description": "Personal Activity & Food Tracker Data",  # Used when creating a new gist
        "timeout": 15.0,                                # HTTP timeout (seconds)
        "max_retries": 3,                               # Retry budget for 429/5xx
    },

    # --- Sync engine ----------------------------------------------------------
    "sync": {
        "debounce_ms": 500,                             # Quiet period collapsing mutation bursts into one push
        "tombstone_clear": "confirmed",                 # "confirmed" = trim against written remote; "all" = clear after push
        "tombstone_trim_interval_sec": 0,               # Periodic re-check of pending deletions (0 = off)
        "load_on_start": True,                          # Queue a load from the remote when the app starts
    },

    # --- Runtime / Diagnostics ----------------------------------------------
    "runtime": {
        "debug": False,                                 # Extra verbose logging (debug level)
        "state_dir": "",                                # Optional override for state dir (defaults to CONFIG/state)
    },

    # --- HTTP surface ---------------------------------------------------------
    "ui": {
        "host": "0.0.0.0",
        "port": 8787,
    },
}

_TOMBSTONE_CLEAR_MODES = ("confirmed", "all")


# ------------------------------------------------------------
# Helpers: paths, IO, merging, normalization
# ------------------------------------------------------------
def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"


def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def _write_json_atomic(p: Path, data: Dict[str, Any]) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _normalize(cfg: Dict[str, Any]) -> Dict[str, Any]:
    gist = cfg["gist"]
    for key in ("token", "gist_id", "backup_gist_id"):
        gist[key] = str(gist.get(key) or "").strip()

    sync = cfg["sync"]
    try:
        sync["debounce_ms"] = max(0, int(sync.get("debounce_ms", 500)))
    except (TypeError, ValueError):
        sync["debounce_ms"] = 500
    try:
        sync["tombstone_trim_interval_sec"] = max(0, int(sync.get("tombstone_trim_interval_sec") or 0))
    except (TypeError, ValueError):
        sync["tombstone_trim_interval_sec"] = 0
    mode = str(sync.get("tombstone_clear") or "confirmed").strip().lower()
    sync["tombstone_clear"] = mode if mode in _TOMBSTONE_CLEAR_MODES else "confirmed"
    return cfg


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """Read config.json merged over the defaults. A missing or broken file yields the defaults."""
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            loaded = _read_json(p)
            if isinstance(loaded, dict):
                user_cfg = loaded
        except Exception:
            user_cfg = {}

    return _normalize(_deep_merge(DEFAULT_CFG, user_cfg))


def save_config(cfg: Mapping[str, Any]) -> None:
    _write_json_atomic(_cfg_file(), dict(cfg or {}))


def update_config(patch: Mapping[str, Any]) -> Dict[str, Any]:
    cfg = _deep_merge(load_config(), dict(patch or {}))
    save_config(cfg)
    return _normalize(cfg)


def state_dir(cfg: Mapping[str, Any] | None = None) -> Path:
    rt = dict((cfg or {}).get("runtime") or {})
    override = str(rt.get("state_dir") or "").strip()
    return Path(override) if override else CONFIG_BASE() / "state"


def is_configured(cfg: Mapping[str, Any]) -> bool:
    gist = dict(cfg.get("gist") or {})
    return bool(str(gist.get("token") or "").strip() and str(gist.get("gist_id") or "").strip())


def masked(cfg: Mapping[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(dict(cfg))
    gist = out.get("gist")
    if isinstance(gist, dict) and gist.get("token"):
        tok = str(gist["token"])
        gist["token"] = f"{tok[:4]}…{tok[-2:]}" if len(tok) > 8 else "••••"
    return out
