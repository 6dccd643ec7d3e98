"""Per-file index mutations that report outcomes instead of raising.

Strategies and reconciliation both fold over these outcomes, so one bad
file never aborts a pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import structlog

from indexsync.core.errors import TransientIOError
from indexsync.index.routing import IndexRouter
from indexsync.storage.fingerprints import hash_file

logger = structlog.get_logger()


class FileAction(Enum):
    UPDATED = "updated"
    REMOVED = "removed"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FileOutcome:
    """What happened to one path."""

    path: str
    action: FileAction
    error: TransientIOError | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.action is not FileAction.FAILED


async def index_file(
    router: IndexRouter,
    project_root: Path,
    rel_path: str,
    *,
    skip_unchanged: bool = False,
) -> FileOutcome:
    """Hash a file, push it to its index and record the new fingerprint."""
    target = router.target_for(rel_path)
    full = project_root / rel_path
    try:
        stat = full.stat()
        content_hash = hash_file(full)
    except OSError as e:
        return _failed(TransientIOError.hash_failed(rel_path, str(e)))

    if skip_unchanged and target.fingerprints.get(rel_path) == content_hash:
        return FileOutcome(rel_path, FileAction.UNCHANGED)

    try:
        await target.index.update_file(rel_path)
    except Exception as e:
        return _failed(TransientIOError.update_failed(rel_path, str(e)))

    target.fingerprints.set(rel_path, content_hash, size=stat.st_size, mtime=stat.st_mtime)
    return FileOutcome(rel_path, FileAction.UPDATED)


async def unindex_file(router: IndexRouter, rel_path: str) -> FileOutcome:
    """Remove a file from its index and forget its fingerprint."""
    target = router.target_for(rel_path)
    try:
        await target.index.remove_file(rel_path)
    except Exception as e:
        return _failed(TransientIOError.remove_failed(rel_path, str(e)))

    target.fingerprints.delete(rel_path)
    return FileOutcome(rel_path, FileAction.REMOVED)


def _failed(error: TransientIOError) -> FileOutcome:
    path = str(error.details.get("path", ""))
    logger.warning("file_operation_failed", path=path, error=error.error_name, reason=error.message)
    return FileOutcome(path, FileAction.FAILED, error=error)
