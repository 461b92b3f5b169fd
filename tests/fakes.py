# TrackerSync test scripts
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from ts_platform.models import Category, DashboardCard, Entry, Item, TrackerData, empty_data


def item(id: str, name: str | None = None, categories: list[str] | None = None) -> Item:
    return Item(id=id, name=name or id, categories=list(categories or []))


def category(id: str, name: str | None = None, sentiment: str = "neutral") -> Category:
    return Category(id=id, name=name or id, sentiment=sentiment)


def entry(id: str, item_id: str = "i1", type: str = "food", **kw: Any) -> Entry:
    return Entry(id=id, type=type, item_id=item_id, date=kw.pop("date", "2026-01-01"), **kw)


def card(category_id: str) -> DashboardCard:
    return DashboardCard(category_id=category_id)


def make_data(**fields: Any) -> TrackerData:
    fields.setdefault("dashboard_initialized", True)
    return TrackerData(**fields)


def make_cfg(*, token: str = "tok", gist_id: str = "g1", backup_gist_id: str = "", **sync: Any) -> dict[str, Any]:
    return {
        "gist": {"token": token, "gist_id": gist_id, "backup_gist_id": backup_gist_id},
        "sync": {"debounce_ms": 500, "tombstone_clear": "confirmed", "tombstone_trim_interval_sec": 0,
                 "load_on_start": False, **sync},
    }


@dataclass
class FakeRemote:
    docs: dict[str, TrackerData] = field(default_factory=dict)
    fail_fetch: Exception | None = None
    fail_replace: Exception | None = None
    gate: threading.Event | None = None
    entered: threading.Event = field(default_factory=threading.Event)
    calls: list[tuple[str, str]] = field(default_factory=list)
    replaced: list[tuple[str, TrackerData]] = field(default_factory=list)

    def fetch(self, doc_id: str, credential: str) -> TrackerData:
        self.calls.append(("fetch", doc_id))
        self.entered.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail_fetch is not None:
            raise self.fail_fetch
        data = self.docs.get(doc_id)
        return data if data is not None else empty_data()

    def replace(self, doc_id: str, credential: str, data: TrackerData) -> None:
        self.calls.append(("replace", doc_id))
        if self.fail_replace is not None:
            raise self.fail_replace
        self.replaced.append((doc_id, data))
        self.docs[doc_id] = data


@dataclass
class FakeTimer:
    interval: float
    fn: Callable[[], Any]
    started: bool = False
    cancelled: bool = False
    fired: bool = False
    daemon: bool = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.fn()


@dataclass
class FakeTimers:
    created: list[FakeTimer] = field(default_factory=list)

    def __call__(self, interval: float, fn: Callable[[], Any]) -> FakeTimer:
        t = FakeTimer(interval, fn)
        self.created.append(t)
        return t

    @property
    def live(self) -> list[FakeTimer]:
        return [t for t in self.created if t.started and not t.cancelled and not t.fired]

    def fire_all(self) -> None:
        for t in list(self.live):
            t.fire()
