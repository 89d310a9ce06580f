"""Collection storage: one JSON array per fixed key, file-based or in memory."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class StorageFullError(Exception):
    """Serialized collection exceeds the storage quota."""


class CollectionStore(Protocol):
    def read(self, key: str) -> list[dict[str, Any]]: ...
    def write(self, key: str, items: list[dict[str, Any]]) -> None: ...
    def remove(self, key: str) -> None: ...


def _serialize(items: list[dict[str, Any]]) -> str:
    return json.dumps(items, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# File-based implementation
# ---------------------------------------------------------------------------

class FileCollectionStore:
    """Persist each collection as ``<key>.json``. Writes replace the whole file atomically."""

    def __init__(self, storage_dir: Path, max_bytes: int | None = None):
        self._dir = Path(storage_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._max_bytes = max_bytes

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def read(self, key: str) -> list[dict[str, Any]]:
        path = self._path(key)
        if not path.exists():
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Error reading %s: %s", path, e)
            return []
        if not isinstance(data, list):
            logger.error("Ignoring %s: expected a JSON array", path)
            return []
        return [d for d in data if isinstance(d, dict)]

    def write(self, key: str, items: list[dict[str, Any]]) -> None:
        payload = _serialize(items)
        if self._max_bytes is not None and len(payload.encode("utf-8")) > self._max_bytes:
            raise StorageFullError(f"{key}: {len(payload)} bytes exceeds quota of {self._max_bytes}")
        fd, tmp = tempfile.mkstemp(dir=self._dir, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp, self._path(key))
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise StorageFullError(f"{key}: write failed: {e}") from e

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryCollectionStore:
    """Keeps serialized JSON per key, so reads never alias the caller's objects."""

    def __init__(self, max_bytes: int | None = None):
        self._data: dict[str, str] = {}
        self._max_bytes = max_bytes

    def read(self, key: str) -> list[dict[str, Any]]:
        raw = self._data.get(key)
        return json.loads(raw) if raw else []

    def write(self, key: str, items: list[dict[str, Any]]) -> None:
        payload = _serialize(items)
        if self._max_bytes is not None and len(payload.encode("utf-8")) > self._max_bytes:
            raise StorageFullError(f"{key}: {len(payload)} bytes exceeds quota of {self._max_bytes}")
        self._data[key] = payload

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


def save_capped(store: CollectionStore, key: str, items: list[dict[str, Any]], cap: int) -> bool:
    """Write at most ``cap`` items. On quota failure keep the first ``cap // 2`` and retry once.

    Returns False when the write was dropped; the stored collection is left untouched then.
    """
    kept = items[:cap]
    try:
        store.write(key, kept)
        return True
    except StorageFullError as e:
        reduced = kept[: max(cap // 2, 0)]
        logger.warning("Storage full for %s (%s); shrinking to %d items", key, e, len(reduced))
    try:
        store.write(key, reduced)
        return True
    except StorageFullError as e:
        logger.error("Dropping write to %s: %s", key, e)
        return False
