# /api/_context.py
# TrackerSync - access to the running TrackerApp from request handlers
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from services.context import TrackerApp


def get_tracker(request: Request) -> TrackerApp:
    tracker = getattr(request.app.state, "tracker", None)
    if tracker is None:
        raise HTTPException(status_code=503, detail="tracker not initialised")
    return tracker


def _ok(payload: dict[str, Any] | None = None, *, status_code: int = 200) -> JSONResponse:
    payload = dict(payload or {})
    payload.setdefault("ok", True)
    return JSONResponse(payload, status_code=status_code)


def _err(msg: str, *, status_code: int = 400, extra: dict[str, Any] | None = None) -> JSONResponse:
    payload: dict[str, Any] = {"ok": False, "error": msg}
    if extra:
        payload.update(extra)
    return JSONResponse(payload, status_code=status_code)
