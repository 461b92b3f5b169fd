# /api/backupAPI.py
# TrackerSync - backup / restore against the secondary gist
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from services.context import TrackerApp
from ts_platform.sync import ConfigError, SyncError

from _logging import log as _root_log

from ._context import _err, _ok, get_tracker

router = APIRouter(prefix="/api/backup", tags=["backup"])

_log = _root_log.child("BACKUP")


def _target(body: dict[str, Any] | None) -> str | None:
    body = body or {}
    raw = str(body.get("gist_id") or body.get("backupGistId") or "").strip()
    return raw or None


def _run(op: str, fn: Callable[[str | None], dict[str, Any]], target: str | None) -> JSONResponse:
    try:
        summary = fn(target)
    except ConfigError as e:
        return _err(str(e), status_code=400)
    except SyncError as e:
        _log.error(f"{op} failed: {e}")
        return _err(f"{type(e).__name__}: {e}", status_code=502)
    return _ok({"result": summary})


@router.post("")
def api_backup(body: dict[str, Any] | None = Body(None), tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    return _run("backup", tracker.backup, _target(body))


@router.post("/restore")
def api_restore(body: dict[str, Any] | None = Body(None), tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    return _run("restore", tracker.restore, _target(body))
