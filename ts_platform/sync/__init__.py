# Public surface of the sync engine package.
from ._merge import merge_by_id, merge_dashboard_cards, merge_favorites, merge_tracker_data
from ._state_store import DATA_KEY, TOMB_KEY, StateStore
from ._store import LocalStore
from ._tombstones import TombstoneLedger
from ._types import (
    ConfigError,
    GistConfig,
    RemoteAdapter,
    RemoteValidationError,
    SyncError,
    SyncStatus,
    TransportError,
)
from .facade import SyncEngine

__all__ = [
    "SyncEngine",
    "LocalStore",
    "TombstoneLedger",
    "StateStore",
    "DATA_KEY",
    "TOMB_KEY",
    "merge_by_id",
    "merge_dashboard_cards",
    "merge_favorites",
    "merge_tracker_data",
    "GistConfig",
    "RemoteAdapter",
    "SyncStatus",
    "SyncError",
    "ConfigError",
    "RemoteValidationError",
    "TransportError",
]
