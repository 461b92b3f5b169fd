# ts_platform/sync/_tombstones.py
# ledger of local deletions the remote has not confirmed yet.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import threading
from collections.abc import Mapping
from typing import Any, Callable

from ..models import (
    DASHBOARD_CARDS,
    FAVORITE_ITEMS,
    LEDGER_COLLECTIONS,
    RECORD_COLLECTIONS,
    TrackerData,
    record_ids,
)
from ._state_store import TOMB_KEY, StateStore


def _noop(*_a: Any, **_k: Any) -> None:
    return None


class TombstoneLedger:
    """
    One set of ids per deletable collection.

    An id enters the ledger when it is deleted locally and leaves it once a remote copy is
    seen without it (or when the whole ledger is cleared). Every change is written through
    to the state store before the call returns, so pending deletions survive a restart.
    """

    def __init__(
        self,
        store: StateStore,
        *,
        key: str = TOMB_KEY,
        dbg: Callable[..., Any] | None = None,
    ) -> None:
        self.store = store
        self.key = key
        self.dbg = dbg or _noop
        self._lock = threading.RLock()
        self._sets: dict[str, set[str]] = {c: set() for c in LEDGER_COLLECTIONS}
        self.load()

    # persistence
    def load(self) -> None:
        raw = self.store.get(self.key)
        sets: dict[str, set[str]] = {c: set() for c in LEDGER_COLLECTIONS}
        if isinstance(raw, Mapping):
            for coll, ids in raw.items():
                if coll in sets and isinstance(ids, list):
                    sets[coll] = {str(x) for x in ids if isinstance(x, (str, int))}
        with self._lock:
            self._sets = sets

    def as_dict(self) -> dict[str, list[str]]:
        with self._lock:
            return {c: sorted(ids) for c, ids in self._sets.items() if ids}

    def _save(self) -> None:
        data = self.as_dict()
        if data:
            self.store.set(self.key, data)
        else:
            self.store.remove(self.key)

    def _check(self, collection: str) -> None:
        if collection not in self._sets:
            raise KeyError(f"unknown collection: {collection}")

    # mutation
    def record_deletion(self, collection: str, record_id: str) -> None:
        with self._lock:
            self._check(collection)
            self._sets[collection].add(str(record_id))
            self._save()
        self.dbg("tombstones.marked", collection=collection, id=record_id)

    def forget(self, collection: str, record_id: str) -> None:
        with self._lock:
            self._check(collection)
            if str(record_id) not in self._sets[collection]:
                return
            self._sets[collection].discard(str(record_id))
            self._save()
        self.dbg("tombstones.forgotten", collection=collection, id=record_id)

    def clear_confirmed_deletions(self, remote: TrackerData) -> int:
        removed = 0
        with self._lock:
            for coll, ids in self._sets.items():
                if not ids:
                    continue
                present = record_ids(remote, coll)
                keep = {i for i in ids if i in present}
                removed += len(ids) - len(keep)
                self._sets[coll] = keep
            if removed:
                self._save()
        self.dbg("tombstones.confirmed", removed=removed, kept=self.count())
        return removed

    def clear_all(self) -> None:
        with self._lock:
            self._sets = {c: set() for c in LEDGER_COLLECTIONS}
            self.store.remove(self.key)
        self.dbg("tombstones.cleared")

    # queries
    def pending(self, collection: str) -> frozenset[str]:
        with self._lock:
            self._check(collection)
            return frozenset(self._sets[collection])

    def snapshot(self) -> dict[str, frozenset[str]]:
        with self._lock:
            return {c: frozenset(ids) for c, ids in self._sets.items()}

    def count(self) -> int:
        with self._lock:
            return sum(len(ids) for ids in self._sets.values())

    def is_empty(self) -> bool:
        return self.count() == 0

    def filter_pending_deletions(self, data: TrackerData) -> TrackerData:
        snap = self.snapshot()
        if not any(snap.values()):
            return data

        update: dict[str, Any] = {}
        for coll, attr in RECORD_COLLECTIONS.items():
            gone = snap[coll]
            if gone:
                update[attr] = [r for r in getattr(data, attr) if r.id not in gone]
        if snap[DASHBOARD_CARDS]:
            update["dashboard_cards"] = [
                c for c in data.dashboard_cards if c.category_id not in snap[DASHBOARD_CARDS]
            ]
        if snap[FAVORITE_ITEMS]:
            update["favorite_items"] = [
                i for i in data.favorite_items if i not in snap[FAVORITE_ITEMS]
            ]
        return data.model_copy(update=update)
