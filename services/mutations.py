# services/mutations.py
# TrackerSync - create/update/delete of tracker records
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

from typing import Any, Callable

from ts_platform.models import (
    DASHBOARD_CARDS,
    ENTRIES,
    FAVORITE_ITEMS,
    Category,
    DashboardCard,
    Entry,
    EntryType,
    Item,
    Sentiment,
    TrackerData,
    categories_key,
    generate_id,
    get_categories,
    get_items,
    items_key,
)
from ts_platform.sync import LocalStore, TombstoneLedger

from _logging import log as _root_log

_log = _root_log.child("DATA")

_ENTRY_FIELDS = ("date", "time", "notes", "category_overrides")


def _items_attr(entry_type: EntryType) -> str:
    return "activity_items" if entry_type == "activity" else "food_items"


def _categories_attr(entry_type: EntryType) -> str:
    return "activity_categories" if entry_type == "activity" else "food_categories"


class TrackerMutations:
    """
    The only writer of tracker records.

    Deletions are written to the ledger before the snapshot changes; every mutation then
    arms the push debounce. Nothing here touches the network, so a mutation always succeeds
    locally.
    """

    def __init__(
        self,
        store: LocalStore,
        ledger: TombstoneLedger,
        on_mutation: Callable[[], Any] | None = None,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.on_mutation = on_mutation

    def _changed(self) -> None:
        if self.on_mutation is None:
            return
        try:
            self.on_mutation()
        except Exception as e:
            _log.warn(f"mutation hook failed: {e}")

    def _apply(self, fn: Callable[[TrackerData], dict[str, Any]]) -> TrackerData:
        data = self.store.update(lambda d: d.model_copy(update=fn(d)))
        self._changed()
        return data

    # Categories
    def add_category(self, entry_type: EntryType, name: str, sentiment: Sentiment = "neutral") -> Category:
        category = Category(id=generate_id(), name=name.strip(), sentiment=sentiment)
        attr = _categories_attr(entry_type)
        self._apply(lambda d: {attr: [*getattr(d, attr), category]})
        _log.debug(f"category added {entry_type}/{category.id}")
        return category

    def update_category(
        self,
        entry_type: EntryType,
        category_id: str,
        name: str,
        sentiment: Sentiment | None = None,
    ) -> None:
        if not name.strip():
            return
        changes: dict[str, Any] = {"name": name.strip()}
        if sentiment is not None:
            changes["sentiment"] = sentiment
        attr = _categories_attr(entry_type)
        self._apply(lambda d: {
            attr: [c.model_copy(update=changes) if c.id == category_id else c for c in getattr(d, attr)]
        })

    def delete_category(self, entry_type: EntryType, category_id: str) -> None:
        self.ledger.record_deletion(categories_key(entry_type), category_id)
        cat_attr = _categories_attr(entry_type)
        item_attr = _items_attr(entry_type)

        def _strip(ids: list[str]) -> list[str]:
            return [i for i in ids if i != category_id]

        def _change(d: TrackerData) -> dict[str, Any]:
            entries: list[Entry] = []
            for e in d.entries:
                if e.type == entry_type and e.category_overrides:
                    e = e.model_copy(update={"category_overrides": _strip(e.category_overrides)})
                entries.append(e)
            return {
                cat_attr: [c for c in getattr(d, cat_attr) if c.id != category_id],
                item_attr: [
                    i.model_copy(update={"categories": _strip(i.categories)}) for i in getattr(d, item_attr)
                ],
                "entries": entries,
            }

        self._apply(_change)
        _log.debug(f"category deleted {entry_type}/{category_id}")

    # Items
    def add_item(self, entry_type: EntryType, name: str, category_ids: list[str] | None = None) -> Item:
        item = Item(id=generate_id(), name=name, categories=list(category_ids or []))
        attr = _items_attr(entry_type)
        self._apply(lambda d: {attr: [*getattr(d, attr), item]})
        return item

    def update_item(self, entry_type: EntryType, item_id: str, name: str, category_ids: list[str]) -> None:
        attr = _items_attr(entry_type)
        changes = {"name": name, "categories": list(category_ids)}
        self._apply(lambda d: {
            attr: [i.model_copy(update=changes) if i.id == item_id else i for i in getattr(d, attr)]
        })

    def delete_item(self, entry_type: EntryType, item_id: str) -> None:
        self.ledger.record_deletion(items_key(entry_type), item_id)
        attr = _items_attr(entry_type)

        def _change(d: TrackerData) -> dict[str, Any]:
            # under the store lock: every entry removed here is tombstoned
            kept: list[Entry] = []
            for e in d.entries:
                if e.type == entry_type and e.item_id == item_id:
                    self.ledger.record_deletion(ENTRIES, e.id)
                else:
                    kept.append(e)
            return {
                attr: [i for i in getattr(d, attr) if i.id != item_id],
                "entries": kept,
                "favorite_items": [f for f in d.favorite_items if f != item_id],
            }

        self._apply(_change)
        _log.debug(f"item deleted {entry_type}/{item_id}")

    # Entries
    def add_entry(
        self,
        entry_type: EntryType,
        item_id: str,
        date: str,
        time: str | None = None,
        notes: str | None = None,
        category_overrides: list[str] | None = None,
    ) -> Entry:
        entry = Entry(
            id=generate_id(),
            type=entry_type,
            item_id=item_id,
            date=date,
            time=time,
            notes=notes,
            category_overrides=category_overrides,
        )
        self._apply(lambda d: {"entries": [*d.entries, entry]})
        return entry

    def update_entry(self, entry_id: str, **updates: Any) -> None:
        unknown = set(updates) - set(_ENTRY_FIELDS)
        if unknown:
            raise ValueError(f"cannot update entry fields: {', '.join(sorted(unknown))}")

        def _one(e: Entry) -> Entry:
            # validated copy, so a bad value fails here and not on the next load
            return Entry.model_validate({**e.model_dump(), **updates}) if e.id == entry_id else e

        self._apply(lambda d: {"entries": [_one(e) for e in d.entries]})

    def delete_entry(self, entry_id: str) -> None:
        self.ledger.record_deletion(ENTRIES, entry_id)
        self._apply(lambda d: {"entries": [e for e in d.entries if e.id != entry_id]})

    # Dashboard
    def add_dashboard_card(self, category_id: str) -> DashboardCard:
        """Show a category on the dashboard; a category gets at most one card."""
        card = DashboardCard(category_id=category_id)
        # a removed card that comes back must not stay tombstoned
        self.ledger.forget(DASHBOARD_CARDS, category_id)

        def _change(d: TrackerData) -> dict[str, Any]:
            if any(c.category_id == category_id for c in d.dashboard_cards):
                return {}
            return {"dashboard_cards": [*d.dashboard_cards, card]}

        self._apply(_change)
        return card

    def remove_dashboard_card(self, category_id: str) -> None:
        self.ledger.record_deletion(DASHBOARD_CARDS, category_id)
        self._apply(lambda d: {
            "dashboard_cards": [c for c in d.dashboard_cards if c.category_id != category_id]
        })

    # Favorites
    def toggle_favorite(self, item_id: str) -> bool:
        """Flip the favorite flag of an item; returns the new state."""
        was_favorite = self.is_favorite(item_id)
        if was_favorite:
            self.ledger.record_deletion(FAVORITE_ITEMS, item_id)
        else:
            self.ledger.forget(FAVORITE_ITEMS, item_id)

        def _change(d: TrackerData) -> dict[str, Any]:
            favs = [f for f in d.favorite_items if f != item_id]
            return {"favorite_items": favs if was_favorite else [*favs, item_id]}

        self._apply(_change)
        return not was_favorite

    def is_favorite(self, item_id: str) -> bool:
        return item_id in self.store.snapshot.favorite_items

    # Accessors
    def get_item_by_id(self, entry_type: EntryType, item_id: str) -> Item | None:
        return next((i for i in get_items(self.store.snapshot, entry_type) if i.id == item_id), None)

    def get_category_by_id(self, entry_type: EntryType, category_id: str) -> Category | None:
        return next((c for c in get_categories(self.store.snapshot, entry_type) if c.id == category_id), None)

    def get_category_name(self, entry_type: EntryType, category_id: str) -> str:
        category = self.get_category_by_id(entry_type, category_id)
        return category.name if category else ""

    def get_category_names(self, entry_type: EntryType, category_ids: list[str]) -> list[str]:
        names = {c.id: c.name for c in get_categories(self.store.snapshot, entry_type)}
        return [names[i] for i in category_ids if names.get(i)]
