"""Persisted content fingerprints, one per indexed file.

The store is an in-memory map backed by a JSON file. Mutations only flip a
dirty flag; callers decide when to save, so a pass touching hundreds of
files costs one write.

On-disk format::

    {"version": "1.0.0",
     "fingerprints": {"src/a.py": {"hash": "...", "size": 120, "mtime": 1700000000.0}}}

Plain string values (hash only) are accepted on load.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from indexsync.core.errors import StateError, StorageError
from indexsync.storage.jsonfile import read_json, write_json_atomic

logger = structlog.get_logger()

FINGERPRINTS_VERSION = "1.0.0"
FINGERPRINTS_FILE = "fingerprints.json"
DOCS_FINGERPRINTS_FILE = "docs-fingerprints.json"

_HASH_CHUNK = 65536


def hash_file(path: Path) -> str:
    """SHA-256 of a file's bytes, read in chunks."""
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(_HASH_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


@dataclass(frozen=True, slots=True)
class FingerprintRecord:
    """Fingerprint of one project-relative path."""

    path: str
    content_hash: str
    size: int | None = None
    mtime: float | None = None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"hash": self.content_hash}
        if self.size is not None:
            data["size"] = self.size
        if self.mtime is not None:
            data["mtime"] = self.mtime
        return data

    @classmethod
    def from_json(cls, path: str, value: Any) -> FingerprintRecord:
        if isinstance(value, str):
            return cls(path=path, content_hash=value)
        if isinstance(value, dict) and isinstance(value.get("hash"), str):
            return cls(
                path=path,
                content_hash=value["hash"],
                size=value.get("size"),
                mtime=value.get("mtime"),
            )
        raise ValueError(f"invalid fingerprint entry for {path!r}")


class FingerprintStore:
    """Map of project-relative path to content fingerprint.

    Keys are case-sensitive POSIX-style relative paths. Must be loaded once
    before use.
    """

    def __init__(self, store_path: Path) -> None:
        self._store_path = store_path
        self._records: dict[str, FingerprintRecord] = {}
        self._loaded = False
        self._dirty = False

    @classmethod
    def for_index(cls, index_path: Path, *, docs: bool = False) -> FingerprintStore:
        return cls(index_path / (DOCS_FINGERPRINTS_FILE if docs else FINGERPRINTS_FILE))

    @property
    def store_path(self) -> Path:
        return self._store_path

    def is_loaded(self) -> bool:
        return self._loaded

    def has_unsaved_changes(self) -> bool:
        return self._dirty

    def load(self) -> None:
        """Load from disk. A missing file yields an empty store.

        Raises:
            StorageError: The file exists but is corrupt.
        """
        data = read_json(self._store_path)
        records: dict[str, FingerprintRecord] = {}
        if data is not None:
            raw = data.get("fingerprints")
            if not isinstance(raw, dict):
                raise StorageError.corrupt(str(self._store_path), "missing 'fingerprints' object")
            try:
                for path, value in raw.items():
                    records[path] = FingerprintRecord.from_json(path, value)
            except ValueError as e:
                raise StorageError.corrupt(str(self._store_path), str(e)) from e

        self._records = records
        self._loaded = True
        self._dirty = False
        logger.debug("fingerprints_loaded", path=str(self._store_path), count=len(records))

    def save(self) -> None:
        """Persist to disk and clear the dirty flag."""
        self._ensure_loaded()
        write_json_atomic(
            self._store_path,
            {
                "version": FINGERPRINTS_VERSION,
                "fingerprints": {p: r.to_json() for p, r in sorted(self._records.items())},
            },
        )
        self._dirty = False
        logger.debug("fingerprints_saved", path=str(self._store_path), count=len(self._records))

    def save_if_dirty(self) -> bool:
        if not self._loaded or not self._dirty:
            return False
        self.save()
        return True

    def get(self, path: str) -> str | None:
        self._ensure_loaded()
        record = self._records.get(path)
        return record.content_hash if record else None

    def get_record(self, path: str) -> FingerprintRecord | None:
        self._ensure_loaded()
        return self._records.get(path)

    def set(
        self,
        path: str,
        content_hash: str,
        *,
        size: int | None = None,
        mtime: float | None = None,
    ) -> None:
        self._ensure_loaded()
        self._records[path] = FingerprintRecord(path, content_hash, size, mtime)
        self._dirty = True

    def delete(self, path: str) -> bool:
        self._ensure_loaded()
        if self._records.pop(path, None) is None:
            return False
        self._dirty = True
        return True

    def has(self, path: str) -> bool:
        self._ensure_loaded()
        return path in self._records

    def count(self) -> int:
        self._ensure_loaded()
        return len(self._records)

    def clear(self) -> None:
        self._ensure_loaded()
        if self._records:
            self._dirty = True
        self._records = {}

    def get_all(self) -> dict[str, str]:
        """Snapshot copy of path -> hash."""
        self._ensure_loaded()
        return {p: r.content_hash for p, r in self._records.items()}

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            raise StateError.store_not_loaded(str(self._store_path))
