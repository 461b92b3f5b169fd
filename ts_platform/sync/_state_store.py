# ts_platform/sync/_state_store.py
# durable key/value storage for the local snapshot and the deletion ledger.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DATA_KEY = "tracker_data"
TOMB_KEY = "pending_deletions"


@dataclass
class StateStore:
    base_path: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def __post_init__(self) -> None:
        self.base_path = Path(self.base_path)

    def path_for(self, key: str) -> Path:
        return self.base_path / f"{key}.json"

    def _read(self, p: Path, default: Any) -> Any:
        if not p.exists():
            return default
        try:
            return json.loads(p.read_text("utf-8"))
        except Exception:
            return default

    def _write_atomic(self, p: Path, data: Any) -> None:
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(p.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        tmp.replace(p)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read(self.path_for(key), default)

    def set(self, key: str, data: Any) -> None:
        with self._lock:
            self._write_atomic(self.path_for(key), data)

    def remove(self, key: str) -> None:
        with self._lock:
            self.path_for(key).unlink(missing_ok=True)
