# services/context.py
# TrackerSync - application context owning the store, ledger, engine and scheduler
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import json
import threading
import time
from collections import deque
from pathlib import Path
from typing import Any, Callable, Mapping

from ts_platform.config_base import is_configured, load_config as _load_config, state_dir
from ts_platform.gist import GistClient
from ts_platform.models import TrackerData
from ts_platform.sync import LocalStore, RemoteAdapter, StateStore, SyncEngine, TombstoneLedger

from _logging import log as _root_log

from .import_export import export_filename, export_json, validate_and_parse_import
from .mutations import TrackerMutations
from .scheduling import SyncScheduler

_log = _root_log.child("APP")

MAX_NOTIFICATIONS = 50


class TrackerApp:
    """Everything one running tracker needs, wired together once and passed around by reference."""

    def __init__(
        self,
        *,
        load_config: Callable[[], Mapping[str, Any]] = _load_config,
        remote: RemoteAdapter | None = None,
        base_path: str | Path | None = None,
        timer_factory: Callable[..., Any] = threading.Timer,
    ) -> None:
        self.load_config = load_config
        cfg = load_config() or {}

        self.storage = StateStore(Path(base_path) if base_path else state_dir(cfg))
        self.store = LocalStore(self.storage)
        self.ledger = TombstoneLedger(self.storage, dbg=self._dbg)
        self.remote: RemoteAdapter = remote if remote is not None else GistClient.from_config(cfg)

        self._notes: deque[dict[str, Any]] = deque(maxlen=MAX_NOTIFICATIONS)
        self._notes_lock = threading.Lock()

        self.engine = SyncEngine(
            store=self.store,
            ledger=self.ledger,
            remote=self.remote,
            load_config=load_config,
            on_progress=self._on_event,
        )
        self.scheduler = SyncScheduler(
            self.engine.push,
            self.engine.load,
            self.engine.trim_tombstones,
            load_config=load_config,
            has_tombstones=lambda: not self.ledger.is_empty(),
            timer_factory=timer_factory,
            log_fn=_root_log.child("SCHED"),
        )
        self.engine.schedule_push = self.scheduler.notify_mutation
        self.mutations = TrackerMutations(self.store, self.ledger, self.scheduler.notify_mutation)
        self._started = False

    def _dbg(self, event: str, **fields: Any) -> None:
        _log.debug(event, " ".join(f"{k}={v}" for k, v in fields.items()))

    # Notifications
    def _on_event(self, payload: str) -> None:
        try:
            evt = json.loads(payload)
        except ValueError:
            return
        if not isinstance(evt, dict):
            return
        name = str(evt.get("event") or "")
        if name == "sync:error":
            self.notify(f"Sync failed: {evt.get('error') or 'unknown error'}", level="error")
        elif name in ("backup:done", "restore:done"):
            what = "Backup" if name == "backup:done" else "Restore"
            self.notify(f"{what} completed ({evt.get('target')})", level="success")

    def notify(self, message: str, *, level: str = "info") -> None:
        with self._notes_lock:
            self._notes.append({"ts": int(time.time()), "level": level, "message": message})

    def notifications(self, *, clear: bool = False) -> list[dict[str, Any]]:
        with self._notes_lock:
            out = list(self._notes)
            if clear:
                self._notes.clear()
        return out

    # Lifecycle
    def is_configured(self) -> bool:
        return is_configured(self.load_config() or {})

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.scheduler.start()
        sync = dict((self.load_config() or {}).get("sync") or {})
        if self.is_configured() and sync.get("load_on_start", True):
            _log.info("configured; queueing initial load")
            self.scheduler.request_load()

    def stop(self) -> None:
        self.scheduler.stop()
        self._started = False

    # Backup channel
    def backup(self, target_doc_id: str | None = None) -> dict[str, Any]:
        return self.engine.backup(target_doc_id)

    def restore(self, target_doc_id: str | None = None) -> dict[str, Any]:
        return self.engine.restore(target_doc_id)

    # Import / export
    def export_data(self) -> tuple[str, str]:
        return export_filename(), export_json(self.store.snapshot)

    def import_data(self, text: str | bytes) -> bool:
        data = validate_and_parse_import(text)
        if data is None:
            return False
        self.replace_data(data)
        return True

    def replace_data(self, data: TrackerData) -> None:
        self.store.set_data(data)
        self.ledger.clear_all()
        self.scheduler.notify_mutation()
        _log.info("local data replaced")

    # Status
    def sync_status(self) -> dict[str, Any]:
        return {
            **self.store.status_info(),
            "configured": self.is_configured(),
            "pending_deletions": self.ledger.count(),
            "scheduler": self.scheduler.status(),
        }
