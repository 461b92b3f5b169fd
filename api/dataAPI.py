# /api/dataAPI.py
# TrackerSync - tracker records: snapshot, CRUD, favorites, import/export
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from services.context import TrackerApp
from ts_platform.models import EntryType, Sentiment, dump_tracker_data

from ._context import _err, _ok, get_tracker

router = APIRouter(prefix="/api/data", tags=["data"])


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryIn(_Body):
    name: str = Field(min_length=1)
    sentiment: Sentiment = "neutral"


class CategoryPatch(_Body):
    name: str
    sentiment: Sentiment | None = None


class ItemIn(_Body):
    name: str = Field(min_length=1)
    categories: list[str] = Field(default_factory=list)


class EntryIn(_Body):
    type: EntryType
    item_id: str
    date: str
    time: str | None = None
    notes: str | None = None
    category_overrides: list[str] | None = None


class EntryPatch(_Body):
    date: str | None = None
    time: str | None = None
    notes: str | None = None
    category_overrides: list[str] | None = None


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


@router.get("")
def api_data(tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    return JSONResponse(dump_tracker_data(tracker.store.snapshot))


# Categories
@router.post("/categories/{entry_type}")
def api_add_category(entry_type: EntryType, body: CategoryIn, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    cat = tracker.mutations.add_category(entry_type, body.name, body.sentiment)
    return _ok({"category": _dump(cat)}, status_code=201)


@router.put("/categories/{entry_type}/{category_id}")
def api_update_category(
    entry_type: EntryType,
    category_id: str,
    body: CategoryPatch,
    tracker: TrackerApp = Depends(get_tracker),
) -> JSONResponse:
    tracker.mutations.update_category(entry_type, category_id, body.name, body.sentiment)
    return _ok()


@router.delete("/categories/{entry_type}/{category_id}")
def api_delete_category(entry_type: EntryType, category_id: str, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    tracker.mutations.delete_category(entry_type, category_id)
    return _ok()


# Items
@router.post("/items/{entry_type}")
def api_add_item(entry_type: EntryType, body: ItemIn, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    item = tracker.mutations.add_item(entry_type, body.name, body.categories)
    return _ok({"item": _dump(item)}, status_code=201)


@router.put("/items/{entry_type}/{item_id}")
def api_update_item(entry_type: EntryType, item_id: str, body: ItemIn, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    tracker.mutations.update_item(entry_type, item_id, body.name, body.categories)
    return _ok()


@router.delete("/items/{entry_type}/{item_id}")
def api_delete_item(entry_type: EntryType, item_id: str, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    tracker.mutations.delete_item(entry_type, item_id)
    return _ok()


# Entries
@router.post("/entries")
def api_add_entry(body: EntryIn, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    entry = tracker.mutations.add_entry(
        body.type,
        body.item_id,
        body.date,
        time=body.time,
        notes=body.notes,
        category_overrides=body.category_overrides,
    )
    return _ok({"entry": _dump(entry)}, status_code=201)


@router.patch("/entries/{entry_id}")
def api_update_entry(entry_id: str, body: EntryPatch, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    tracker.mutations.update_entry(entry_id, **body.model_dump(exclude_unset=True))
    return _ok()


@router.delete("/entries/{entry_id}")
def api_delete_entry(entry_id: str, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    tracker.mutations.delete_entry(entry_id)
    return _ok()


# Dashboard / favorites
@router.post("/dashboard/{category_id}")
def api_add_dashboard_card(category_id: str, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    card = tracker.mutations.add_dashboard_card(category_id)
    return _ok({"card": _dump(card)}, status_code=201)


@router.delete("/dashboard/{category_id}")
def api_remove_dashboard_card(category_id: str, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    tracker.mutations.remove_dashboard_card(category_id)
    return _ok()


@router.post("/favorites/{item_id}/toggle")
def api_toggle_favorite(item_id: str, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    return _ok({"favorite": tracker.mutations.toggle_favorite(item_id)})


# Export / import
@router.get("/export")
def api_export(tracker: TrackerApp = Depends(get_tracker)) -> Response:
    filename, text = tracker.export_data()
    return Response(
        content=text,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def api_import(request: Request, tracker: TrackerApp = Depends(get_tracker)) -> JSONResponse:
    raw = await request.body()
    if not tracker.import_data(raw):
        return _err("Import failed: the file is not a valid tracker export", status_code=400)
    return _ok()
