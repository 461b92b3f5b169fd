# ts_platform/sync/_types.py
# errors, statuses and collaborator protocols for the sync engine.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from ..models import TrackerData


# Errors

class SyncError(RuntimeError): ...


class ConfigError(SyncError):
    """No credential or no target document configured."""


class RemoteValidationError(SyncError):
    """The remote payload is not a valid snapshot; local data must not be replaced by it."""


class TransportError(SyncError):
    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


# Status

class SyncStatus(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


# Remote document protocol

class RemoteAdapter(Protocol):
    def fetch(self, doc_id: str, credential: str) -> TrackerData: ...

    def replace(self, doc_id: str, credential: str, data: TrackerData) -> None: ...


# Credentials for the remote documents

@dataclass(frozen=True)
class GistConfig:
    token: str = ""
    gist_id: str = ""
    backup_gist_id: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.token and self.gist_id)

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> GistConfig:
        g = dict(cfg.get("gist") or {})
        return cls(
            token=str(g.get("token") or "").strip(),
            gist_id=str(g.get("gist_id") or "").strip(),
            backup_gist_id=str(g.get("backup_gist_id") or "").strip(),
        )

    def backup_target(self, override: str | None = None) -> tuple[str, str]:
        target = str(override or self.backup_gist_id or "").strip()
        if not self.token or not target:
            raise ConfigError("Token and backup Gist ID are required")
        return self.token, target
