# ts_platform/sync/_logging.py
# progress/notification events emitted by the sync engine.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import json
from typing import Any, Callable

from _logging import log as _root_log

_log = _root_log.child("SYNC")


class Emitter:
    def __init__(self, cb: Callable[[str], None] | None):
        self.cb = cb

    def emit(self, event: str, **data: Any) -> None:
        payload: dict[str, Any] = {"event": event}
        payload.update(data)
        if event.endswith(":error"):
            _log.error(event, " ".join(f"{k}={v}" for k, v in data.items()))
        else:
            _log.debug(event, " ".join(f"{k}={v}" for k, v in data.items()))
        if not self.cb:
            return
        try:
            self.cb(json.dumps(payload, separators=(",", ":"), default=str))
        except Exception as e:
            _log.warn(f"event callback failed for {event}: {e}")
