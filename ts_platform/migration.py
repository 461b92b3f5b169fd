# ts_platform/migration.py
# upgrades of stored/remote payloads and dashboard defaults.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from typing import Any, Mapping

from .models import DashboardCard, TrackerData

DEFAULT_DASHBOARD_CATEGORIES = ("Fruit", "Vegetables", "Sugary drinks")


def migrate_data(raw: Mapping[str, Any]) -> Mapping[str, Any]:
    """Give categories saved before sentiments existed a neutral sentiment."""
    migrated = False

    def _cats(value: Any) -> Any:
        nonlocal migrated
        if not isinstance(value, list):
            return value
        out: list[Any] = []
        for c in value:
            if isinstance(c, Mapping) and c.get("sentiment") is None:
                migrated = True
                c = {**c, "sentiment": "neutral"}
            out.append(c)
        return out

    result = dict(raw)
    for key in ("activityCategories", "foodCategories"):
        if key in result:
            result[key] = _cats(result[key])
    return result if migrated else raw


def initialize_default_dashboard_cards(data: TrackerData) -> TrackerData:
    if data.dashboard_initialized:
        return data

    categories = [*data.food_categories, *data.activity_categories]
    cards: list[DashboardCard] = []
    for name in DEFAULT_DASHBOARD_CATEGORIES:
        found = next((c for c in categories if c.name.lower() == name.lower()), None)
        if found is not None:
            cards.append(DashboardCard(category_id=found.id))

    return data.model_copy(
        update={
            "dashboard_cards": cards or list(data.dashboard_cards),
            "dashboard_initialized": True,
        }
    )
