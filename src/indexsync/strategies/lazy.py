"""Deferred indexing: collect changes, process them in one batch.

Changes are only queued. A pass runs on flush(), on stop(), or after the
project has been quiet for lazy_idle_threshold_sec. The queue is persisted
under the index path so work queued before a restart is not lost.
"""

from __future__ import annotations

import asyncio

import structlog

from indexsync.core.errors import StorageError
from indexsync.storage.pending import PendingFileStore
from indexsync.strategies.base import IndexingStrategy, StrategyContext, StrategyName
from indexsync.strategies.watcher import FileWatcher

logger = structlog.get_logger()


class LazyStrategy(IndexingStrategy):
    """Batches changes until flushed or idle."""

    name = StrategyName.LAZY

    def __init__(self, context: StrategyContext) -> None:
        super().__init__(context)
        self._store = PendingFileStore.for_index(context.index_path)
        self._watcher: FileWatcher | None = None
        self._idle_task: asyncio.Task[None] | None = None

    async def _on_start(self) -> None:
        try:
            self._store.load()
        except StorageError as e:
            logger.warning("pending_files_discarded", error=e.message)
        restored = self._enqueue(self._store.paths())
        if restored:
            logger.info("pending_files_restored", count=restored)

        self._watcher = self._build_watcher()
        await self._watcher.start()
        if restored:
            self._arm_idle_timer()

    async def _stop_triggers(self) -> None:
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None

    def _on_enqueued(self) -> None:
        self._persist_pending()
        self._arm_idle_timer()

    async def _before_stop(self) -> None:
        self._cancel_task(self._idle_task)
        self._idle_task = None
        await self._drain()
        self._persist_pending()

    async def _after_pass(self) -> None:
        self._persist_pending()

    def _arm_idle_timer(self) -> None:
        threshold = self._ctx.config.lazy_idle_threshold_sec
        if threshold <= 0:
            return
        self._cancel_task(self._idle_task)
        self._idle_task = self._spawn(self._idle_flush(threshold))

    async def _idle_flush(self, threshold: float) -> None:
        try:
            await asyncio.sleep(threshold)
        except asyncio.CancelledError:
            return
        logger.info("lazy_idle_flush", pending=self.pending_files, idle_sec=threshold)
        self._schedule_drain()

    def _persist_pending(self) -> None:
        self._store.replace(self._pending)
        if not self._store.has_unsaved_changes():
            return
        try:
            self._store.save()
        except StorageError as e:
            logger.error("pending_files_save_failed", error=e.message)
