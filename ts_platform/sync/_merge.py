# ts_platform/sync/_merge.py
# local/remote snapshot reconciliation.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import AbstractSet, Any, TypeVar

from ..models import (
    DASHBOARD_CARDS,
    FAVORITE_ITEMS,
    RECORD_COLLECTIONS,
    DashboardCard,
    TrackerData,
)

R = TypeVar("R")

_EMPTY: frozenset[str] = frozenset()


def _by_id(record: Any) -> str:
    return record.id


def merge_by_id(
    local: Sequence[R],
    remote: Sequence[R],
    exclude_ids: AbstractSet[str] = _EMPTY,
    *,
    key: Callable[[R], str] = _by_id,
) -> list[R]:
    # Local wins on id collision; excluded ids are dropped from both sides.
    merged = [r for r in local if key(r) not in exclude_ids]
    seen = {key(r) for r in merged}
    for r in remote:
        k = key(r)
        if k in seen or k in exclude_ids:
            continue
        merged.append(r)
        seen.add(k)
    return merged


def merge_dashboard_cards(
    local: Sequence[DashboardCard],
    remote: Sequence[DashboardCard],
    exclude_ids: AbstractSet[str] = _EMPTY,
) -> list[DashboardCard]:
    cards: dict[str, DashboardCard] = {}
    for c in remote:
        if c.category_id not in exclude_ids:
            cards[c.category_id] = c
    for c in local:
        if c.category_id not in exclude_ids:
            cards[c.category_id] = c
    return list(cards.values())


def merge_favorites(
    local: Sequence[str],
    remote: Sequence[str],
    surviving_items: AbstractSet[str],
    exclude_ids: AbstractSet[str] = _EMPTY,
) -> list[str]:
    # ordered union; a favorite never outlives its item
    union = dict.fromkeys([*local, *remote])
    return [i for i in union if i not in exclude_ids and i in surviving_items]


def merge_tracker_data(
    local: TrackerData,
    remote: TrackerData,
    pending: Mapping[str, AbstractSet[str]] | None = None,
) -> TrackerData:
    """
    Combine two complete snapshots into one.

    Records are unioned by id with the local copy winning every collision (no field-level
    merge); ids in ``pending`` (the deletion ledger) never survive, whichever side holds them.
    """
    pending = pending or {}

    def _gone(coll: str) -> AbstractSet[str]:
        return pending.get(coll) or _EMPTY

    update: dict[str, Any] = {}
    for coll, attr in RECORD_COLLECTIONS.items():
        update[attr] = merge_by_id(getattr(local, attr), getattr(remote, attr), _gone(coll))

    update["dashboard_cards"] = merge_dashboard_cards(
        local.dashboard_cards, remote.dashboard_cards, _gone(DASHBOARD_CARDS)
    )

    surviving = {i.id for i in update["activity_items"]} | {i.id for i in update["food_items"]}
    update["favorite_items"] = merge_favorites(
        local.favorite_items, remote.favorite_items, surviving, _gone(FAVORITE_ITEMS)
    )
    update["dashboard_initialized"] = bool(local.dashboard_initialized or remote.dashboard_initialized)

    return TrackerData(**update)
