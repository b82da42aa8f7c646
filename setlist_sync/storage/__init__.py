"""Setlist persistence backends"""

from setlist_sync.storage.setlist_store import (
    JsonFileSetlistStore,
    LoadedSetlists,
    RedisSetlistStore,
    SetlistStore,
    build_document,
    parse_document,
)

__all__ = [
    "JsonFileSetlistStore",
    "LoadedSetlists",
    "RedisSetlistStore",
    "SetlistStore",
    "build_document",
    "parse_document",
]
