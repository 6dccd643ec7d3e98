"""Continuous indexing driven by filesystem notifications."""

from __future__ import annotations

from indexsync.strategies.base import IndexingStrategy, StrategyContext, StrategyName
from indexsync.strategies.watcher import FileWatcher


class RealtimeStrategy(IndexingStrategy):
    """Indexes each debounced batch of changes as soon as it arrives."""

    name = StrategyName.REALTIME

    def __init__(self, context: StrategyContext) -> None:
        super().__init__(context)
        self._watcher: FileWatcher | None = None

    async def _on_start(self) -> None:
        self._watcher = self._build_watcher()
        await self._watcher.start()

    async def _stop_triggers(self) -> None:
        if self._watcher is not None:
            await self._watcher.stop()
            self._watcher = None

    def _on_enqueued(self) -> None:
        self._schedule_drain()
