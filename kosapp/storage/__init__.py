from flask import current_app

from kosapp.storage.base import (
    DuplicateRoomError,
    DuplicateUserError,
    RoomUnavailableError,
    StoreError,
)

EXTENSION_KEY = "kos_store"


def build_store(app):
    backend = app.config.get("STORAGE_BACKEND", "sql")
    if backend == "json":
        from kosapp.storage.json_store import JsonStore
        return JsonStore(app.config["DATA_DIR"])
    if backend == "sql":
        from kosapp.storage.sql_store import SqlStore
        return SqlStore()
    raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")


def get_store():
    return current_app.extensions[EXTENSION_KEY]


__all__ = [
    "DuplicateRoomError",
    "DuplicateUserError",
    "RoomUnavailableError",
    "StoreError",
    "build_store",
    "get_store",
]
