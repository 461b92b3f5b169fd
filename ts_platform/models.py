# ts_platform/models.py
# tracker data model and wire (de)serialization.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import json
import secrets
import string
import time
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Sentiment = Literal["positive", "neutral", "limit"]
EntryType = Literal["activity", "food"]

# Collection names, as they appear on the wire and in the pending-deletions ledger
ENTRIES = "entries"
ACTIVITY_ITEMS = "activityItems"
FOOD_ITEMS = "foodItems"
ACTIVITY_CATEGORIES = "activityCategories"
FOOD_CATEGORIES = "foodCategories"
DASHBOARD_CARDS = "dashboardCards"
FAVORITE_ITEMS = "favoriteItems"

# id-keyed record collections -> TrackerData attribute
RECORD_COLLECTIONS: dict[str, str] = {
    ACTIVITY_ITEMS: "activity_items",
    FOOD_ITEMS: "food_items",
    ACTIVITY_CATEGORIES: "activity_categories",
    FOOD_CATEGORIES: "food_categories",
    ENTRIES: "entries",
}
LEDGER_COLLECTIONS: tuple[str, ...] = (*RECORD_COLLECTIONS, DASHBOARD_CARDS, FAVORITE_ITEMS)


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


class Category(_Record):
    id: str
    name: str
    sentiment: Sentiment


class Item(_Record):
    id: str
    name: str
    categories: list[str] = Field(default_factory=list)


class Entry(_Record):
    id: str
    type: EntryType
    item_id: str
    date: str
    time: str | None = None
    notes: str | None = None
    category_overrides: list[str] | None = None


class DashboardCard(_Record):
    category_id: str
    baseline: Literal["rolling_4_week_avg"] = "rolling_4_week_avg"
    comparison: Literal["last_week"] = "last_week"


class TrackerData(_Record):
    activity_items: list[Item] = Field(default_factory=list)
    food_items: list[Item] = Field(default_factory=list)
    activity_categories: list[Category] = Field(default_factory=list)
    food_categories: list[Category] = Field(default_factory=list)
    entries: list[Entry] = Field(default_factory=list)
    dashboard_cards: list[DashboardCard] = Field(default_factory=list)
    dashboard_initialized: bool = False
    favorite_items: list[str] = Field(default_factory=list)


def empty_data() -> TrackerData:
    return TrackerData()


_B36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    out = ""
    while n:
        n, r = divmod(n, 36)
        out = _B36[r] + out
    return out or "0"


def generate_id() -> str:
    """Opaque record id: millisecond clock in base36 plus a random suffix."""
    suffix = "".join(secrets.choice(_B36) for _ in range(7))
    return _base36(int(time.time() * 1000)) + suffix


def parse_tracker_data(raw: Any) -> TrackerData:
    """Validate a wire payload. Older payloads without category sentiment are migrated first."""
    from .migration import migrate_data

    if isinstance(raw, Mapping):
        raw = migrate_data(raw)
    return TrackerData.model_validate(raw)


def dump_tracker_data(data: TrackerData) -> dict[str, Any]:
    return data.model_dump(mode="json", by_alias=True)


def tracker_data_to_json(data: TrackerData) -> str:
    return json.dumps(dump_tracker_data(data), indent=2, ensure_ascii=False)


def record_ids(data: TrackerData, collection: str) -> set[str]:
    if collection == DASHBOARD_CARDS:
        return {c.category_id for c in data.dashboard_cards}
    if collection == FAVORITE_ITEMS:
        return set(data.favorite_items)
    return {r.id for r in getattr(data, RECORD_COLLECTIONS[collection])}


# Collection accessor helpers
def items_key(entry_type: EntryType) -> str:
    return ACTIVITY_ITEMS if entry_type == "activity" else FOOD_ITEMS


def categories_key(entry_type: EntryType) -> str:
    return ACTIVITY_CATEGORIES if entry_type == "activity" else FOOD_CATEGORIES


def get_items(data: TrackerData, entry_type: EntryType) -> list[Item]:
    return data.activity_items if entry_type == "activity" else data.food_items


def get_categories(data: TrackerData, entry_type: EntryType) -> list[Category]:
    return data.activity_categories if entry_type == "activity" else data.food_categories
