"""Persisted set of paths waiting for a deferred indexing pass."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from indexsync.core.errors import StorageError
from indexsync.storage.jsonfile import read_json, write_json_atomic

logger = structlog.get_logger()

PENDING_VERSION = "1.0.0"
PENDING_FILE = "pending-files.json"


class PendingFileStore:
    """Ordered, de-duplicated set of project-relative paths.

    Used by the lazy strategy so queued work survives a restart.
    """

    def __init__(self, store_path: Path) -> None:
        self._store_path = store_path
        self._paths: dict[str, None] = {}
        self._dirty = False

    @classmethod
    def for_index(cls, index_path: Path) -> PendingFileStore:
        return cls(index_path / PENDING_FILE)

    def load(self) -> None:
        data = read_json(self._store_path)
        paths: dict[str, None] = {}
        if data is not None:
            raw = data.get("paths", [])
            if not isinstance(raw, list) or not all(isinstance(p, str) for p in raw):
                raise StorageError.corrupt(str(self._store_path), "'paths' must be a list of strings")
            paths = dict.fromkeys(raw)
        self._paths = paths
        self._dirty = False
        logger.debug("pending_files_loaded", path=str(self._store_path), count=len(paths))

    def save(self) -> None:
        write_json_atomic(
            self._store_path,
            {"version": PENDING_VERSION, "paths": list(self._paths)},
        )
        self._dirty = False

    def has_unsaved_changes(self) -> bool:
        return self._dirty

    def replace(self, paths: Iterable[str]) -> None:
        new = dict.fromkeys(paths)
        if list(new) != list(self._paths):
            self._paths = new
            self._dirty = True

    def paths(self) -> list[str]:
        return list(self._paths)

    def count(self) -> int:
        return len(self._paths)
