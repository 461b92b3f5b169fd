# ts_platform/sync/facade.py
# push / load / backup / restore against the remote document.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import time
from dataclasses import dataclass, field
from collections.abc import Callable, Mapping
from typing import Any

from ..models import TrackerData
from ._logging import Emitter
from ._merge import merge_tracker_data
from ._store import LocalStore
from ._tombstones import TombstoneLedger
from ._types import GistConfig, RemoteAdapter, SyncStatus

__all__ = ["SyncEngine"]


@dataclass
class SyncEngine:
    store: LocalStore
    ledger: TombstoneLedger
    remote: RemoteAdapter
    load_config: Callable[[], Mapping[str, Any]]
    on_progress: Callable[[str], None] | None = None
    schedule_push: Callable[[], Any] | None = None

    emitter: Emitter = field(init=False)

    def __post_init__(self) -> None:
        self.emitter = Emitter(self.on_progress)

    def _gist(self) -> GistConfig:
        return GistConfig.from_config(self.load_config() or {})

    def _tombstone_clear_mode(self) -> str:
        sync = dict((self.load_config() or {}).get("sync") or {})
        return str(sync.get("tombstone_clear") or "confirmed")

    def _summary(self, op: str, started: float, **extra: Any) -> dict[str, Any]:
        out: dict[str, Any] = {
            "op": op,
            "ok": True,
            "skipped": False,
            "error": None,
            "duration_ms": int((time.time() - started) * 1000),
        }
        out.update(extra)
        return out

    def _fail(self, op: str, started: float, exc: Exception) -> dict[str, Any]:
        msg = f"{type(exc).__name__}: {exc}"
        self.store.set_status(SyncStatus.ERROR, msg)
        self.emitter.emit("sync:error", op=op, error=msg)
        return self._summary(op, started, ok=False, error=msg)

    def _merge_into_local(self, remote: TrackerData) -> TrackerData:
        # ledger is read under the store lock; a later deletion waits for this commit
        return self.store.update(lambda local: merge_tracker_data(local, remote, self.ledger.snapshot()))

    # Sync operations (run by the scheduler, one at a time)
    def push(self) -> dict[str, Any]:
        started = time.time()
        gist = self._gist()
        if not gist.configured:
            return self._summary("push", started, ok=False, skipped=True)

        self.store.set_status(SyncStatus.SYNCING)
        self.emitter.emit("sync:start", op="push")
        try:
            remote = self.remote.fetch(gist.gist_id, gist.token)
            merged = self._merge_into_local(remote)
            self.remote.replace(gist.gist_id, gist.token, merged)
            if self._tombstone_clear_mode() == "all":
                self.ledger.clear_all()
                trimmed = -1
            else:
                trimmed = self.ledger.clear_confirmed_deletions(merged)
        except Exception as e:
            return self._fail("push", started, e)

        self.store.set_status(SyncStatus.IDLE)
        self.emitter.emit("sync:done", op="push", tombstones_cleared=trimmed)
        return self._summary("push", started, tombstones_cleared=trimmed)

    def load(self) -> dict[str, Any]:
        started = time.time()
        gist = self._gist()
        if not gist.configured:
            return self._summary("load", started, ok=False, skipped=True)

        self.store.set_status(SyncStatus.SYNCING)
        self.emitter.emit("sync:start", op="load")
        try:
            remote = self.ledger.filter_pending_deletions(
                self.remote.fetch(gist.gist_id, gist.token)
            )
            merged = self._merge_into_local(remote)
            self.remote.replace(gist.gist_id, gist.token, merged)
            # trimmed against what was just written; never a blanket clear here
            trimmed = self.ledger.clear_confirmed_deletions(merged)
        except Exception as e:
            return self._fail("load", started, e)

        self.store.set_status(SyncStatus.IDLE)
        self.emitter.emit("sync:done", op="load", tombstones_cleared=trimmed)
        return self._summary("load", started, tombstones_cleared=trimmed)

    def trim_tombstones(self) -> dict[str, Any]:
        started = time.time()
        gist = self._gist()
        if not gist.configured or self.ledger.is_empty():
            return self._summary("trim", started, ok=False, skipped=True)
        try:
            remote = self.remote.fetch(gist.gist_id, gist.token)
        except Exception as e:
            self.emitter.emit("sync:trim_failed", error=f"{type(e).__name__}: {e}")
            return self._summary("trim", started, ok=False, error=str(e))
        removed = self.ledger.clear_confirmed_deletions(remote)
        return self._summary("trim", started, tombstones_cleared=removed)

    # Backup channel (explicit user action, bypasses the ledger and the queue)
    def backup(self, target_doc_id: str | None = None) -> dict[str, Any]:
        started = time.time()
        token, target = self._gist().backup_target(target_doc_id)
        self.remote.replace(target, token, self.store.snapshot)
        self.emitter.emit("backup:done", target=target)
        return self._summary("backup", started, target=target)

    def restore(self, target_doc_id: str | None = None) -> dict[str, Any]:
        started = time.time()
        token, target = self._gist().backup_target(target_doc_id)
        data = self.remote.fetch(target, token)
        self.store.set_data(data)
        self.ledger.clear_all()
        if self.schedule_push is not None:
            self.schedule_push()
        self.emitter.emit("restore:done", target=target)
        return self._summary("restore", started, target=target)
