# /api/syncAPI.py
# TrackerSync - sync status and manual load / push
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from services.context import TrackerApp

from ._context import _err, _ok, get_tracker

router = APIRouter(prefix="/api/sync", tags=["sync"])

WAIT_TIMEOUT_SEC = 60.0


def _settle(fut: Future | None, wait: bool) -> JSONResponse:
    if fut is None:
        return _ok({"queued": False})
    if not wait:
        return _ok({"queued": True})
    try:
        summary: dict[str, Any] = dict(fut.result(timeout=WAIT_TIMEOUT_SEC) or {})
    except FutureTimeout:
        return _ok({"queued": True, "pending": True}, status_code=202)
    except Exception as e:
        return _err(f"{type(e).__name__}: {e}", status_code=500)
    if summary.get("error"):
        return _err(str(summary["error"]), status_code=502, extra={"result": summary})
    return _ok({"result": summary})


@router.get("/status")
def api_sync_status(tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    return JSONResponse(tracker.sync_status())


@router.post("/load")
def api_sync_load(
    wait: bool = Query(True, description="Block until the load has run"),
    tracker: TrackerApp = Depends(get_tracker),
) -> JSONResponse:
    return _settle(tracker.scheduler.request_load(), wait)


@router.post("/push")
def api_sync_push(
    wait: bool = Query(True, description="Block until the push has run"),
    tracker: TrackerApp = Depends(get_tracker),
) -> JSONResponse:
    fut = tracker.scheduler.flush() or tracker.scheduler.request_push()
    return _settle(fut, wait)


@router.post("/trim")
def api_sync_trim(
    wait: bool = Query(True),
    tracker: TrackerApp = Depends(get_tracker),
) -> JSONResponse:
    return _settle(tracker.scheduler.request_trim(), wait)


@router.get("/tombstones")
def api_sync_tombstones(tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    return JSONResponse({"count": tracker.ledger.count(), "pending": tracker.ledger.as_dict()})


@router.get("/notifications")
def api_sync_notifications(
    clear: bool = Query(False),
    tracker: TrackerApp = Depends(get_tracker),
) -> JSONResponse:
    return JSONResponse({"notifications": tracker.notifications(clear=clear)})
