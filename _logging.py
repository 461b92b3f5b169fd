# _logging.py
# Console logger for TrackerSync: "[MODULE] LEVEL message" lines, optional JSON-lines file.
# Copyright (c) 2025-2026 TrackerSync
from __future__ import annotations
import sys, datetime, json, os, threading, time
from pathlib import Path
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

# display label -> (severity, colour)
LABELS: Dict[str, tuple[str, str]] = {
    "DEBUG": ("debug", YELLOW),
    "INFO": ("info", BLUE),
    "WARN": ("warn", YELLOW),
    "ERROR": ("error", RED),
    "SUCCESS": ("info", GREEN),
}
_LABEL_ALIASES = {"warning": "WARN", "err": "ERROR", "ok": "SUCCESS"}


class _DebugFlag:
    """runtime.debug from config.json, re-read at most every `ttl` seconds."""

    def __init__(self, ttl: float = 5.0) -> None:
        self.ttl = ttl
        self._value = False
        self._read_at = 0.0

    @staticmethod
    def _config_file() -> Path:
        base = os.getenv("CONFIG_BASE")
        if base:
            return Path(base) / "config.json"
        if Path("/app").exists():
            return Path("/config") / "config.json"
        return Path(__file__).resolve().parent / "config.json"

    def __call__(self) -> bool:
        now = time.time()
        if now - self._read_at > self.ttl:
            try:
                cfg = json.loads(self._config_file().read_text("utf-8"))
                self._value = bool(((cfg or {}).get("runtime") or {}).get("debug"))
            except Exception:
                self._value = False
            self._read_at = now
        return self._value


_debug_enabled = _DebugFlag()


def _env_level(default: str = "info") -> str:
    lvl = (os.getenv("TRACKER_LOG_LEVEL") or "").strip().lower()
    if lvl == "off":
        return "silent"
    return lvl if lvl in LEVELS else default


class _Sinks:
    """Output shared by a logger and every logger bound from it."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self.json_file: Optional[TextIO] = None
        self.lock = threading.Lock()

    def write(self, line: str, record: Optional[Dict[str, Any]] = None) -> None:
        with self.lock:
            self.stream.write(line + "\n")
            self.stream.flush()
            if self.json_file is not None and record is not None:
                self.json_file.write(json.dumps(record, ensure_ascii=False, default=str) + "\n")
                self.json_file.flush()

    def open_json(self, path: str) -> None:
        with self.lock:
            if self.json_file is not None:
                self.json_file.close()
            self.json_file = open(path, "a", encoding="utf-8")

    def close(self) -> None:
        with self.lock:
            if self.json_file is not None:
                self.json_file.close()
                self.json_file = None


class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        *,
        color: bool = True,
        timestamps: bool = True,
        time_fmt: str = "%Y-%m-%d %H:%M:%S",
        context: Optional[Mapping[str, Any]] = None,
        sinks: Optional[_Sinks] = None,
    ):
        self.level = level if level in LEVELS else "info"
        self.color = color
        self.timestamps = timestamps
        self.time_fmt = time_fmt
        self.context: Dict[str, Any] = dict(context or {})
        self._sinks = sinks or _Sinks(stream)

    # Configuration
    def set_level(self, level: str) -> None:
        if level in LEVELS:
            self.level = level

    def enable_json(self, file_path: str) -> None:
        self._sinks.open_json(file_path)

    def close(self) -> None:
        self._sinks.close()

    # Context
    def bind(self, **ctx: Any) -> "Logger":
        return Logger(
            level=self.level,
            color=self.color,
            timestamps=self.timestamps,
            time_fmt=self.time_fmt,
            context={**self.context, **ctx},
            sinks=self._sinks,
        )

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    # Emission
    def enabled(self, severity: str) -> bool:
        own = LEVELS[self.level]
        if own >= LEVELS["silent"]:
            return False
        if severity == "debug":
            return own <= LEVELS["debug"] or _debug_enabled()
        return LEVELS.get(severity, LEVELS["info"]) >= own

    def _format(self, label: str, msg: str) -> str:
        colour = LABELS.get(label, ("info", ""))[1] if self.color else ""
        shown = f"{colour}{label}{RESET}" if colour else label
        mod = str(self.context.get("module") or "").strip()
        line = f"[{mod}] {shown} {msg}" if mod else f"{shown} {msg}"
        if not self.timestamps:
            return line
        ts = datetime.datetime.now().strftime(self.time_fmt)
        return f"{DIM}[{ts}]{RESET} {line}" if self.color else f"[{ts}] {line}"

    def emit(self, label: str, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        severity = LABELS.get(label, ("info", ""))[0]
        if not self.enabled(severity):
            return
        msg = " ".join(str(p) for p in parts)
        record: Dict[str, Any] = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds"),
            "level": label,
            "msg": msg,
            "ctx": self.context,
        }
        if extra:
            record["extra"] = dict(extra)
        self._sinks.write(self._format(label, msg), record)

    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self.emit("DEBUG", *parts, extra=extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self.emit("INFO", *parts, extra=extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self.emit("WARN", *parts, extra=extra)

    warning = warn

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self.emit("ERROR", *parts, extra=extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self.emit("SUCCESS", *parts, extra=extra)

    # log_fn adapter: logger("text", level="WARN")
    def __call__(self, message: str, *, level: str = "INFO", extra: Optional[Mapping[str, Any]] = None) -> None:
        key = (level or "INFO").strip()
        label = _LABEL_ALIASES.get(key.lower(), key.upper())
        self.emit(label if label in LABELS else "INFO", message, extra=extra)


log = Logger(level=_env_level())

__all__ = ["Logger", "log", "LEVELS", "LABELS"]
