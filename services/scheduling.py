# services/scheduling.py
# TrackerSync - debounced pushes and the single-flight sync queue
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations

import threading
import time
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Mapping

SyncOp = Callable[[], dict[str, Any]]

DEFAULT_DEBOUNCE_MS = 500

# upper bound for one idle wait, so config changes are picked up
_IDLE_WAIT_SEC = 30.0


def _now_ts() -> int:
    return int(time.time())


@dataclass
class _Task:
    name: str
    fn: SyncOp
    future: Future = field(default_factory=Future)
    queued_at: float = field(default_factory=time.time)


class SyncScheduler:
    """
    Debounce timer in front of a FIFO of sync operations drained by one worker thread.

    Operations never overlap and run in the order they were requested. A mutation only
    re-arms the timer; the push is queued when the timer fires (or on flush()).
    """

    def __init__(
        self,
        run_push: SyncOp,
        run_load: SyncOp,
        run_trim: SyncOp | None = None,
        *,
        load_config: Callable[[], Mapping[str, Any]] | None = None,
        has_tombstones: Callable[[], bool] | None = None,
        timer_factory: Callable[..., Any] = threading.Timer,
        log_fn: Callable[..., Any] | None = None,
    ) -> None:
        self.run_push = run_push
        self.run_load = run_load
        self.run_trim = run_trim
        self.load_config_cb = load_config or (lambda: {})
        self.has_tombstones = has_tombstones or (lambda: True)
        self.timer_factory = timer_factory
        self.log_fn = log_fn

        self._thread: threading.Thread | None = None
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._queue: deque[_Task] = deque()
        self._active: _Task | None = None
        self._timer: Any = None
        self._armed = 0
        self._next_trim_at: float = 0.0

        self._status: dict[str, Any] = {
            "running": False,
            "debounce_pending": False,
            "mutations": 0,
            "pushes_scheduled": 0,
            "completed": 0,
            "failed": 0,
            "last_op": "",
            "last_run_at": 0,
            "last_run_ok": None,
            "last_error": "",
            "last_result": None,
        }

    def _log(self, msg: str, *, level: str = "INFO") -> None:
        if not self.log_fn:
            return
        try:
            self.log_fn(msg, level=level)
        except TypeError:
            try:
                self.log_fn(msg)
            except Exception:
                pass
        except Exception:
            pass

    def _sync_cfg(self) -> dict[str, Any]:
        try:
            return dict((self.load_config_cb() or {}).get("sync") or {})
        except Exception:
            return {}

    def _debounce_sec(self) -> float:
        try:
            ms = int(self._sync_cfg().get("debounce_ms", DEFAULT_DEBOUNCE_MS))
        except (TypeError, ValueError):
            ms = DEFAULT_DEBOUNCE_MS
        return max(0, ms) / 1000.0

    def _trim_interval(self) -> float:
        try:
            return max(0.0, float(self._sync_cfg().get("tombstone_trim_interval_sec") or 0))
        except (TypeError, ValueError):
            return 0.0

    # Debounce
    def notify_mutation(self) -> None:
        """Re-arm the push timer; a burst of mutations collapses into one push."""
        delay = self._debounce_sec()
        with self._lock:
            self._status["mutations"] += 1
            if self._timer is not None:
                self._timer.cancel()
            self._armed += 1
            timer = self.timer_factory(delay, partial(self._on_debounce, self._armed))
            try:
                timer.daemon = True
            except Exception:
                pass
            self._timer = timer
            self._status["debounce_pending"] = True
        timer.start()

    def _on_debounce(self, generation: int) -> None:
        with self._lock:
            # a timer that was cancelled or replaced after it started firing
            if self._timer is None or generation != self._armed:
                return
            self._timer = None
            self._status["debounce_pending"] = False
        self._log("debounce elapsed; queueing push", level="DEBUG")
        self._enqueue("push", self.run_push, scheduled=True)

    def flush(self) -> Future | None:
        """Queue the pending debounced push right away. Returns None when nothing was pending."""
        with self._lock:
            timer, self._timer = self._timer, None
            self._status["debounce_pending"] = False
        if timer is None:
            return None
        timer.cancel()
        return self._enqueue("push", self.run_push, scheduled=True)

    def cancel_pending(self) -> bool:
        with self._lock:
            timer, self._timer = self._timer, None
            self._status["debounce_pending"] = False
        if timer is None:
            return False
        timer.cancel()
        return True

    # Queue
    def _enqueue(self, name: str, fn: SyncOp, *, scheduled: bool = False) -> Future:
        task = _Task(name, fn)
        with self._cond:
            self._queue.append(task)
            if scheduled:
                self._status["pushes_scheduled"] += 1
            self._cond.notify_all()
        self._log(f"queued {name} (depth={self.queue_depth()})", level="DEBUG")
        return task.future

    def submit(self, name: str, fn: SyncOp) -> Future:
        return self._enqueue(name, fn)

    def request_push(self) -> Future:
        return self.submit("push", self.run_push)

    def request_load(self) -> Future:
        return self.submit("load", self.run_load)

    def request_trim(self) -> Future | None:
        if self.run_trim is None:
            return None
        return self.submit("trim", self.run_trim)

    def queue_depth(self) -> int:
        with self._lock:
            return len(self._queue)

    def drain(self, timeout: float | None = None) -> bool:
        """Block until the queue is empty and nothing is running."""
        with self._cond:
            return self._cond.wait_for(lambda: not self._queue and self._active is None, timeout)

    # Worker
    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        interval = self._trim_interval()
        self._next_trim_at = time.monotonic() + interval if interval > 0 else 0.0
        self._thread = threading.Thread(target=self._loop, name="SyncScheduler", daemon=True)
        self._thread.start()
        self._log("sync worker started", level="INFO")

    def stop(self, timeout: float = 5.0) -> None:
        self.cancel_pending()
        with self._cond:
            self._stop.set()
            self._cond.notify_all()
        t = self._thread
        if t and t.is_alive():
            t.join(timeout=timeout)
        self._log("sync worker stopped", level="INFO")

    def _due_trim(self) -> bool:
        # caller holds the lock
        interval = self._trim_interval()
        if interval <= 0 or self.run_trim is None:
            self._next_trim_at = 0.0
            return False
        now = time.monotonic()
        if self._next_trim_at <= 0:
            self._next_trim_at = now + interval
            return False
        if now < self._next_trim_at:
            return False
        self._next_trim_at = now + interval
        return bool(self.has_tombstones())

    def _idle_wait(self) -> float:
        if self._next_trim_at > 0:
            return max(0.05, min(_IDLE_WAIT_SEC, self._next_trim_at - time.monotonic()))
        return _IDLE_WAIT_SEC

    def _next_task(self) -> _Task | None:
        with self._cond:
            while not self._queue:
                if self._stop.is_set():
                    return None
                if self._due_trim():
                    self._queue.append(_Task("trim", self.run_trim))  # type: ignore[arg-type]
                    break
                self._cond.wait(timeout=self._idle_wait())
            task = self._queue.popleft()
            self._active = task
            return task

    def _run(self, task: _Task) -> None:
        if not task.future.set_running_or_notify_cancel():
            with self._cond:
                self._active = None
                self._cond.notify_all()
            return
        self._log(f"running {task.name}", level="DEBUG")
        result: Any = None
        err = ""
        try:
            result = task.fn()
        except Exception as e:
            err = f"{type(e).__name__}: {e}"
            self._log(f"{task.name} crashed: {err}", level="ERROR")
            task.future.set_exception(e)
        else:
            if isinstance(result, Mapping) and result.get("error"):
                err = str(result.get("error"))
            task.future.set_result(result)

        ok = not err
        with self._cond:
            self._active = None
            self._status["completed" if ok else "failed"] += 1
            self._status["last_op"] = task.name
            self._status["last_run_at"] = _now_ts()
            self._status["last_run_ok"] = ok
            self._status["last_error"] = err
            self._status["last_result"] = dict(result) if isinstance(result, Mapping) else None
            self._cond.notify_all()

    def _loop(self) -> None:
        with self._lock:
            self._status["running"] = True
        try:
            while True:
                task = self._next_task()
                if task is None:
                    break
                self._run(task)
        finally:
            with self._cond:
                self._active = None
                self._status["running"] = False
                self._cond.notify_all()

    def status(self) -> dict[str, Any]:
        with self._lock:
            st = dict(self._status)
            st["queue"] = [t.name for t in self._queue]
            st["active"] = self._active.name if self._active else None
        st["debounce_ms"] = int(self._debounce_sec() * 1000)
        st["trim_interval_sec"] = self._trim_interval()
        return st
