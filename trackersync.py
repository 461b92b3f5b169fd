# /trackersync.py
# TrackerSync - offline-first activity & food tracker with gist sync
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request

from api import register as register_api
from services.context import TrackerApp
from ts_platform.config_base import config_path, load_config

from _logging import log as _root_log

_log = _root_log.child("MAIN")


def create_app(tracker: TrackerApp | None = None) -> FastAPI:
    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        app.state.tracker = tracker or TrackerApp()
        app.state.tracker.start()
        try:
            yield
        finally:
            try:
                app.state.tracker.stop()
            except Exception as e:
                _log.error(f"shutdown failed: {e}")

    app = FastAPI(title="TrackerSync", lifespan=_lifespan)

    # API responses are live state
    @app.middleware("http")
    async def cache_headers_for_api(request: Request, call_next: Any):
        resp = await call_next(request)
        if request.url.path.startswith("/api/"):
            resp.headers["Cache-Control"] = "no-store"
            resp.headers["Pragma"] = "no-cache"
            resp.headers["Expires"] = "0"
        return resp

    @app.get("/healthz", tags=["meta"])
    def healthz() -> dict[str, Any]:
        return {"ok": True}

    register_api(app)
    return app


# Entry point
def main(host: str | None = None, port: int | None = None) -> None:
    cfg = load_config()
    ui = dict(cfg.get("ui") or {})
    host = host or str(ui.get("host") or "0.0.0.0")
    port = int(port or ui.get("port") or 8787)
    debug = bool((cfg.get("runtime") or {}).get("debug"))

    print("\nTrackerSync running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}")
    print(f"  Config:  {config_path()} (JSON)\n")

    uvicorn.run(
        create_app(),
        host=host,
        port=port,
        log_level=("debug" if debug else "warning"),
    )


if __name__ == "__main__":
    main()
