# TrackerSync test scripts
from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable

import pytest

from fakes import FakeRemote, FakeTimers, entry, item, make_cfg, make_data

from services.context import TrackerApp
from services.scheduling import SyncScheduler


def _recorder(name: str, log: list[str], *, gate: threading.Event | None = None) -> Callable[[], dict[str, Any]]:
    def run() -> dict[str, Any]:
        log.append(f"{name}:start")
        if gate is not None:
            gate.wait(timeout=5)
        log.append(f"{name}:end")
        return {"ok": True, "op": name, "error": None}

    return run


@pytest.fixture()
def sched_log() -> list[str]:
    return []


def _scheduler(log: list[str], timers: FakeTimers, **kw: Any) -> SyncScheduler:
    kw.setdefault("run_push", _recorder("push", log))
    kw.setdefault("run_load", _recorder("load", log))
    return SyncScheduler(timer_factory=timers, load_config=lambda: make_cfg(debounce_ms=250), **kw)


def test_mutation_burst_collapses_into_one_push(sched_log: list[str], timers: FakeTimers) -> None:
    sched = _scheduler(sched_log, timers)
    sched.start()
    try:
        for _ in range(3):
            sched.notify_mutation()

        assert [t.cancelled for t in timers.created] == [True, True, False]
        assert timers.created[-1].interval == pytest.approx(0.25)
        assert sched_log == []

        timers.fire_all()
        assert sched.drain(timeout=5)
    finally:
        sched.stop()

    assert sched_log == ["push:start", "push:end"]
    assert sched.status()["pushes_scheduled"] == 1


def test_flush_fires_pending_push_immediately(sched_log: list[str], timers: FakeTimers) -> None:
    sched = _scheduler(sched_log, timers)
    sched.start()
    try:
        assert sched.flush() is None
        sched.notify_mutation()
        fut = sched.flush()
        assert fut is not None
        assert fut.result(timeout=5)["op"] == "push"
        # the cancelled timer must not queue a second push
        timers.created[-1].fn()
        assert sched.drain(timeout=5)
    finally:
        sched.stop()

    assert sched_log == ["push:start", "push:end"]


def test_operations_run_one_at_a_time_in_request_order(sched_log: list[str], timers: FakeTimers) -> None:
    gate = threading.Event()
    sched = _scheduler(sched_log, timers, run_load=_recorder("load", sched_log, gate=gate))
    sched.start()
    try:
        f_load = sched.request_load()
        f_push = sched.request_push()
        f_load2 = sched.request_load()

        assert sched.status()["queue"][-2:] == ["push", "load"]
        gate.set()
        for f in (f_load, f_push, f_load2):
            f.result(timeout=5)
    finally:
        sched.stop()

    assert sched_log == [
        "load:start", "load:end",
        "push:start", "push:end",
        "load:start", "load:end",
    ]


def test_stale_debounce_timer_does_not_steal_the_live_one(sched_log: list[str], timers: FakeTimers) -> None:
    sched = _scheduler(sched_log, timers)
    sched.start()
    try:
        sched.notify_mutation()
        stale = timers.created[0]
        sched.notify_mutation()

        # the first timer was already firing when the second mutation re-armed
        stale.fn()
        assert sched.status()["debounce_pending"] is True
        assert sched.status()["pushes_scheduled"] == 0

        fut = sched.flush()
        assert fut is not None
        fut.result(timeout=5)
    finally:
        sched.stop()

    assert sched_log == ["push:start", "push:end"]


def test_submit_runs_an_arbitrary_operation_in_queue_order(sched_log: list[str], timers: FakeTimers) -> None:
    sched = _scheduler(sched_log, timers)
    f_load = sched.request_load()
    f_custom = sched.submit("reindex", _recorder("reindex", sched_log))
    sched.start()
    try:
        f_load.result(timeout=5)
        assert f_custom.result(timeout=5)["op"] == "reindex"
    finally:
        sched.stop()

    assert sched_log == ["load:start", "load:end", "reindex:start", "reindex:end"]
    assert sched.status()["last_op"] == "reindex"


def test_a_crashing_operation_does_not_stop_the_worker(sched_log: list[str], timers: FakeTimers) -> None:
    def explode() -> dict[str, Any]:
        raise RuntimeError("boom")

    sched = _scheduler(sched_log, timers, run_push=explode)
    sched.start()
    try:
        bad = sched.request_push()
        good = sched.request_load()
        with pytest.raises(RuntimeError):
            bad.result(timeout=5)
        assert good.result(timeout=5)["ok"] is True
    finally:
        sched.stop()

    st = sched.status()
    assert st["failed"] == 1
    assert st["completed"] == 1
    assert st["running"] is False


def test_queued_work_waits_for_start(sched_log: list[str], timers: FakeTimers) -> None:
    sched = _scheduler(sched_log, timers)
    fut = sched.request_load()

    assert sched.drain(timeout=0.05) is False
    sched.start()
    try:
        fut.result(timeout=5)
    finally:
        sched.stop()
    assert sched_log == ["load:start", "load:end"]


def test_periodic_trim_runs_only_with_pending_tombstones(timers: FakeTimers) -> None:
    fired = threading.Event()
    calls: list[int] = []

    def trim() -> dict[str, Any]:
        calls.append(1)
        fired.set()
        return {"ok": True, "op": "trim", "error": None}

    pending = {"value": False}
    sched = SyncScheduler(
        lambda: {},
        lambda: {},
        trim,
        load_config=lambda: {"sync": {"tombstone_trim_interval_sec": 0.05}},
        has_tombstones=lambda: pending["value"],
        timer_factory=timers,
    )
    sched.start()
    try:
        assert not fired.wait(timeout=0.3)
        pending["value"] = True
        assert fired.wait(timeout=5)
    finally:
        sched.stop()
    assert calls


def test_push_waits_for_an_inflight_load_to_commit(tmp_path: Path, remote: FakeRemote, timers: FakeTimers) -> None:
    # another device already added "r1"; "e1" exists on both sides
    remote.docs["g1"] = make_data(food_items=[item("i1"), item("r1")], entries=[entry("e1"), entry("e2")])
    remote.gate = threading.Event()
    app = TrackerApp(load_config=lambda: make_cfg(), remote=remote, base_path=tmp_path, timer_factory=timers)
    app.store.set_data(make_data(food_items=[item("i1")], entries=[entry("e1"), entry("e2")]))
    app.start()
    try:
        load = app.scheduler.request_load()
        assert remote.entered.wait(timeout=5)

        app.mutations.delete_entry("e1")
        push = app.scheduler.flush()
        assert push is not None
        assert app.scheduler.status()["active"] == "load"
        assert remote.calls == [("fetch", "g1")]

        remote.gate.set()
        assert load.result(timeout=5)["ok"] is True
        assert push.result(timeout=5)["ok"] is True
    finally:
        app.stop()

    assert remote.calls == [("fetch", "g1"), ("replace", "g1"), ("fetch", "g1"), ("replace", "g1")]
    final = app.store.snapshot
    assert sorted(i.id for i in final.food_items) == ["i1", "r1"]
    assert [e.id for e in final.entries] == ["e2"]
    assert remote.docs["g1"] == final
    assert app.ledger.is_empty()


def test_three_mutations_reach_the_remote_in_one_push(tmp_path: Path, remote: FakeRemote, timers: FakeTimers) -> None:
    remote.docs["g1"] = make_data(food_items=[item("i1")], entries=[entry("e1")])
    app = TrackerApp(load_config=lambda: make_cfg(), remote=remote, base_path=tmp_path, timer_factory=timers)
    app.store.set_data(make_data(food_items=[item("i1")], entries=[entry("e1")]))
    app.start()
    try:
        pear = app.mutations.add_item("food", "pear")
        snack = app.mutations.add_entry("food", pear.id, "2026-03-01")
        app.mutations.delete_entry("e1")

        assert len(timers.live) == 1
        assert remote.calls == []
        timers.fire_all()
        assert app.scheduler.drain(timeout=5)
    finally:
        app.stop()

    assert remote.calls == [("fetch", "g1"), ("replace", "g1")]
    (_, pushed), = remote.replaced
    assert sorted(i.id for i in pushed.food_items) == sorted(["i1", pear.id])
    assert [e.id for e in pushed.entries] == [snack.id]
    assert app.ledger.is_empty()
