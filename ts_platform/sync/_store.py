# ts_platform/sync/_store.py
# in-memory snapshot with its durable mirror and change listeners.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import threading
import time
from typing import Any, Callable

from pydantic import ValidationError

from _logging import log as _root_log

from ..migration import initialize_default_dashboard_cards
from ..models import TrackerData, dump_tracker_data, empty_data, parse_tracker_data
from ._state_store import DATA_KEY, StateStore
from ._types import SyncStatus

_log = _root_log.child("STORE")

Listener = Callable[[], None]


class LocalStore:
    """
    Holds the current snapshot. Writers replace the reference wholesale, so readers never see a
    half-applied change; every replacement is persisted before listeners are notified.
    """

    def __init__(self, storage: StateStore, *, key: str = DATA_KEY) -> None:
        self.storage = storage
        self.key = key
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []
        self._status_listeners: list[Listener] = []
        self._status = SyncStatus.IDLE
        self._last_error = ""
        self._status_at = 0.0
        self._data = self._load()

    def _load(self) -> TrackerData:
        raw = self.storage.get(self.key)
        data = empty_data()
        if raw is not None:
            try:
                data = parse_tracker_data(raw)
            except ValidationError as e:
                _log.warn(f"stored snapshot ignored, failed validation ({e.error_count()} errors)")
        return initialize_default_dashboard_cards(data)

    # data
    @property
    def snapshot(self) -> TrackerData:
        return self._data

    def get_snapshot(self) -> TrackerData:
        return self._data

    def set_data(self, data: TrackerData) -> TrackerData:
        data = initialize_default_dashboard_cards(data)
        with self._lock:
            if data is self._data:
                return data
            self._data = data
            self.storage.set(self.key, dump_tracker_data(data))
        self._notify(self._listeners)
        return data

    def update(self, fn: Callable[[TrackerData], TrackerData]) -> TrackerData:
        with self._lock:
            return self.set_data(fn(self._data))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._discard(self._listeners, listener)

    # sync status
    @property
    def status(self) -> SyncStatus:
        return self._status

    @property
    def last_error(self) -> str:
        return self._last_error

    def set_status(self, status: SyncStatus, error: str = "") -> None:
        self._status = status
        self._last_error = error if status is SyncStatus.ERROR else ""
        self._status_at = time.time()
        self._notify(self._status_listeners)

    def status_info(self) -> dict[str, Any]:
        return {
            "status": self._status.value,
            "last_error": self._last_error,
            "changed_at": int(self._status_at),
        }

    def subscribe_status(self, listener: Listener) -> Callable[[], None]:
        self._status_listeners.append(listener)
        return lambda: self._discard(self._status_listeners, listener)

    @staticmethod
    def _discard(listeners: list[Listener], listener: Listener) -> None:
        if listener in listeners:
            listeners.remove(listener)

    @staticmethod
    def _notify(listeners: list[Listener]) -> None:
        for cb in list(listeners):
            try:
                cb()
            except Exception as e:
                _log.warn(f"listener failed: {e}")
