from __future__ import annotations

from fastapi import FastAPI

from .backupAPI import router as backup_router
from .configAPI import router as config_router
from .dataAPI import router as data_router
from .syncAPI import router as sync_router

__all__ = [
    "backup_router",
    "config_router",
    "data_router",
    "sync_router",
    "register",
]


def register(app: FastAPI) -> None:
    app.include_router(data_router)
    app.include_router(sync_router)
    app.include_router(backup_router)
    app.include_router(config_router)
