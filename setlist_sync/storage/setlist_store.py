"""
Setlist persistence, one JSON document per REAPER project.

Document shape::

    {
        "setlists": [{"id", "name", "projectId", "items": [...]}],
        "metadata": {"selectedSetlistId": ..., "lastUpdated": ...}
    }

A bare array of setlists is accepted on load (older files).
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import redis
import structlog

from setlist_sync.catalog.models import Setlist
from setlist_sync.errors import TransientIOError

logger = structlog.get_logger()


@dataclass
class LoadedSetlists:
    setlists: List[Setlist] = field(default_factory=list)
    selected_setlist_id: Optional[str] = None


class SetlistStore(Protocol):
    async def load(self, project_id: str) -> LoadedSetlists:
        ...

    async def save(self, project_id: str, setlists: List[Setlist], selected_setlist_id: Optional[str]):
        ...


def build_document(setlists: List[Setlist], selected_setlist_id: Optional[str]) -> Dict[str, Any]:
    return {
        "setlists": [setlist.to_dict() for setlist in setlists],
        "metadata": {
            "selectedSetlistId": selected_setlist_id,
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        },
    }


def parse_document(data: Any, project_id: str) -> LoadedSetlists:
    """
    Read a stored document into setlists.

    Args:
        data: Decoded JSON (object or bare list)
        project_id: Project used for setlists missing a ``projectId``

    Returns:
        Loaded setlists; the selection is dropped if it names no setlist
    """
    if isinstance(data, list):
        raw_setlists, metadata = data, {}
    elif isinstance(data, dict):
        raw_setlists, metadata = data.get("setlists", []), data.get("metadata") or {}
    else:
        logger.warning("Unrecognised setlist document", project_id=project_id)
        return LoadedSetlists()

    setlists = [Setlist.from_dict(raw, project_id=project_id) for raw in raw_setlists]
    selected = metadata.get("selectedSetlistId")
    if selected in (None, "", "null") or not any(s.id == str(selected) for s in setlists):
        selected = None
    return LoadedSetlists(setlists=setlists, selected_setlist_id=str(selected) if selected else None)


class JsonFileSetlistStore:
    """
    Stores ``<base_path>/<project_id>.json``.

    File I/O is blocking, so it runs in the default executor.
    """

    def __init__(self, base_path: str):
        self.base_path = Path(base_path)

    def path_for(self, project_id: str) -> Path:
        safe_id = "".join(c for c in project_id if c.isalnum() or c in "-_") or "default"
        return self.base_path / f"{safe_id}.json"

    def _read(self, project_id: str) -> LoadedSetlists:
        path = self.path_for(project_id)
        if not path.exists():
            logger.info("No setlist file for project", project_id=project_id, path=str(path))
            return LoadedSetlists()
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to read setlist file", path=str(path), error=str(e))
            return LoadedSetlists()
        return parse_document(data, project_id)

    def _write(self, project_id: str, document: Dict[str, Any]):
        path = self.path_for(project_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
        os.replace(tmp_path, path)

    async def load(self, project_id: str) -> LoadedSetlists:
        loop = asyncio.get_running_loop()
        loaded = await loop.run_in_executor(None, self._read, project_id)
        logger.debug("Setlists loaded from file", project_id=project_id, count=len(loaded.setlists))
        return loaded

    async def save(self, project_id: str, setlists: List[Setlist], selected_setlist_id: Optional[str]):
        document = build_document(setlists, selected_setlist_id)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._write, project_id, document)
        logger.info("Setlists saved", project_id=project_id, count=len(setlists))


class RedisSetlistStore:
    """Stores the same document under ``<key_prefix>:<project_id>``."""

    def __init__(self, connection: redis.Redis, key_prefix: str = "setlist-sync:setlists"):
        self.connection = connection
        self.key_prefix = key_prefix

    def key_for(self, project_id: str) -> str:
        return f"{self.key_prefix}:{project_id}"

    async def load(self, project_id: str) -> LoadedSetlists:
        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, self.connection.get, self.key_for(project_id))
        except redis.RedisError as e:
            raise TransientIOError(f"Redis load failed: {e}") from e
        if not raw:
            return LoadedSetlists()
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.error("Corrupt setlist document in Redis", project_id=project_id, error=str(e))
            return LoadedSetlists()
        return parse_document(data, project_id)

    async def save(self, project_id: str, setlists: List[Setlist], selected_setlist_id: Optional[str]):
        payload = json.dumps(build_document(setlists, selected_setlist_id))
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.connection.set, self.key_for(project_id), payload)
        except redis.RedisError as e:
            raise TransientIOError(f"Redis save failed: {e}") from e
        logger.info("Setlists saved to Redis", project_id=project_id, count=len(setlists))
