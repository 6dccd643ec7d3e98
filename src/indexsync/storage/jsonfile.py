"""Versioned JSON files written with temp-file + rename."""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from indexsync.core.errors import StorageError

# Refuse to parse state files larger than this
MAX_STATE_FILE_BYTES = 64 * 1024 * 1024


def read_json(path: Path) -> dict[str, Any] | None:
    """Read a JSON object from path. Returns None if the file does not exist.

    Raises:
        StorageError: File is oversized, unparseable, or not a JSON object.
    """
    try:
        size = path.stat().st_size
    except FileNotFoundError:
        return None
    if size > MAX_STATE_FILE_BYTES:
        raise StorageError.corrupt(str(path), f"file too large ({size} bytes)")
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise StorageError.corrupt(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise StorageError.corrupt(str(path), "top level must be an object")
    return data


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write data as JSON so readers see either the old or the new file.

    Raises:
        StorageError: The file could not be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as e:
        raise StorageError.write_failed(str(path), str(e)) from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise StorageError.write_failed(str(path), str(e)) from e
