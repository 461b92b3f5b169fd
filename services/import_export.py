# services/import_export.py
# TrackerSync - JSON export and lenient import of the whole snapshot
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import json
from datetime import date, datetime, timezone

from pydantic import ValidationError

from ts_platform.models import TrackerData, parse_tracker_data, tracker_data_to_json

from _logging import log as _root_log

_log = _root_log.child("IMPORT")


def export_json(data: TrackerData) -> str:
    return tracker_data_to_json(data)


def export_filename(day: date | None = None) -> str:
    day = day or datetime.now(timezone.utc).date()
    return f"tracker-backup-{day.isoformat()}.json"


def validate_and_parse_import(text: str | bytes) -> TrackerData | None:
    """Parse an exported document. Returns None for anything that is not a valid snapshot."""
    try:
        raw = json.loads(text)
    except (TypeError, ValueError) as e:
        _log.warn(f"import rejected: not JSON ({e})")
        return None
    if not isinstance(raw, dict):
        _log.warn("import rejected: top level is not an object")
        return None
    try:
        return parse_tracker_data(raw)
    except ValidationError as e:
        _log.warn(f"import rejected: {e.error_count()} validation errors")
        return None
