# services/__init__.py
from __future__ import annotations

from .context import TrackerApp
from .mutations import TrackerMutations
from .scheduling import SyncScheduler

__all__ = [
    "TrackerApp",
    "TrackerMutations",
    "SyncScheduler",
]
