"""Commit-driven indexing.

Watches the HEAD reflog. When HEAD moves (commit, checkout, pull, rebase)
the files changed between the last indexed commit and the new HEAD are
queued and processed. Uncommitted edits are not picked up until they are
committed.

The last indexed commit is persisted, so a restart after HEAD moved
catches up on start.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Iterable
from pathlib import Path

import structlog
from watchfiles import Change, awatch

from indexsync.core.errors import PreconditionError, StorageError
from indexsync.git.errors import GitError, RefNotFoundError
from indexsync.git.ops import GitOps, reflog_marker
from indexsync.storage.jsonfile import read_json, write_json_atomic
from indexsync.strategies.base import (
    IndexingStrategy,
    StrategyContext,
    StrategyName,
    cancel_and_wait,
)

logger = structlog.get_logger()

GIT_STATE_VERSION = "1.0.0"
GIT_STATE_FILE = "git-state.json"


class GitStrategy(IndexingStrategy):
    """Indexes the diff between the last indexed commit and HEAD."""

    name = StrategyName.GIT

    def __init__(self, context: StrategyContext) -> None:
        super().__init__(context)
        self._git: GitOps | None = None
        self._state_path = context.index_path / GIT_STATE_FILE
        self._last_indexed: str | None = None
        self._ref_lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def last_indexed_commit(self) -> str | None:
        return self._last_indexed

    async def _on_start(self) -> None:
        project = self._ctx.project_path
        marker = reflog_marker(project)
        if not marker.is_file():
            raise PreconditionError.not_a_repository(str(project), str(marker))
        try:
            self._git = GitOps(project)
            head = self._git.head_sha()
        except GitError as e:
            raise PreconditionError.failed(
                f"Cannot open git repository: {e}", path=str(project)
            ) from e

        self._last_indexed = self._load_state()
        if self._last_indexed is None:
            # First run: the existing index is taken as matching HEAD
            self._last_indexed = head
            self._save_state()

        self._stop_event.clear()
        self._watch_task = asyncio.create_task(self._watch_reflog(marker))

        if head is not None and head != self._last_indexed:
            logger.info("git_catch_up_scheduled", last_indexed=self._last_indexed, head=head)
            self._spawn(self._sync_logged())

    async def _stop_triggers(self) -> None:
        self._stop_event.set()
        await cancel_and_wait(self._watch_task, self._ctx.timeouts.watcher_stop_sec)
        self._watch_task = None

    def notify(self, paths: Iterable[str | Path]) -> None:
        """Filesystem events are not a trigger for this strategy."""
        logger.debug("git_strategy_ignores_file_events")

    async def _flush_pending(self) -> None:
        await self._sync_ref()
        await self._drain()

    async def _sync_logged(self) -> None:
        try:
            await self._sync_ref()
        except Exception as e:
            logger.error("git_sync_failed", error=str(e), exc_info=True)

    async def _sync_ref(self) -> None:
        """Queue and process everything that changed since the last indexed commit."""
        if self._git is None:
            return
        async with self._ref_lock:
            head = self._git.head_sha()
            if head is None or head == self._last_indexed:
                return

            try:
                paths = self._git.changed_paths(self._last_indexed, head)
            except RefNotFoundError:
                # Last indexed commit is gone (rewritten history, gc); rescan HEAD's tree
                logger.warning("git_last_indexed_missing", last_indexed=self._last_indexed)
                paths = self._git.changed_paths(None, head)

            logger.info(
                "git_head_changed",
                previous=self._last_indexed,
                head=head,
                changed_files=len(paths),
            )
            self._enqueue(paths)
            await self._drain()
            self._last_indexed = head
            self._save_state()

    async def _watch_reflog(self, marker: Path) -> None:
        def only_head(_change: Change, path: str) -> bool:
            return os.path.basename(path) == marker.name

        try:
            async for _changes in awatch(
                marker.parent,
                watch_filter=only_head,
                recursive=False,
                debounce=int(self._ctx.config.git_debounce_sec * 1000),
                force_polling=self._ctx.config.force_polling or None,
                stop_event=self._stop_event,
                ignore_permission_denied=True,
            ):
                self._spawn(self._sync_logged())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not self._stop_event.is_set():
                logger.error("reflog_watch_failed", marker=str(marker), error=str(e))

    def _load_state(self) -> str | None:
        try:
            data = read_json(self._state_path)
        except StorageError as e:
            logger.warning("git_state_discarded", error=e.message)
            return None
        if data is None:
            return None
        commit = data.get("last_indexed_commit")
        return commit if isinstance(commit, str) else None

    def _save_state(self) -> None:
        try:
            write_json_atomic(
                self._state_path,
                {"version": GIT_STATE_VERSION, "last_indexed_commit": self._last_indexed},
            )
        except StorageError as e:
            logger.error("git_state_save_failed", error=e.message)
