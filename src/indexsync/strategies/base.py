"""Shared lifecycle and processing loop for indexing strategies.

A strategy owns a queue of project-relative paths. Triggers (filesystem
events, idle timers, ref changes) add to the queue; a processing pass drains
it one path at a time inside the integrity engine's mutation_pass(), so
scheduled drift checks never observe a half-applied pass.

Each path resolves at processing time:
- gone from disk (or now ineligible) and tracked -> remove from index
- eligible and content hash changed             -> update index
- otherwise                                     -> skip
"""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import Coroutine, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, ClassVar

import structlog

from indexsync.config.models import IndexingConfig, TimeoutsConfig
from indexsync.core.errors import StorageError
from indexsync.index.apply import FileAction, FileOutcome, index_file, unindex_file
from indexsync.index.routing import IndexRouter
from indexsync.integrity.engine import IntegrityEngine
from indexsync.policy.ignore import IGNORE_FILE_NAME
from indexsync.policy.policy import IndexingPolicy, PathPolicy, normalize_rel_path
from indexsync.strategies.watcher import FileWatcher

logger = structlog.get_logger()

_IGNORE_FILES = frozenset({IGNORE_FILE_NAME, ".gitignore"})


class StrategyName(str, Enum):
    """Supported triggering policies."""

    REALTIME = "realtime"
    LAZY = "lazy"
    GIT = "git"

    @classmethod
    def values(cls) -> list[str]:
        return [m.value for m in cls]


@dataclass(frozen=True, slots=True)
class StrategyStats:
    """Point-in-time view of a strategy."""

    name: str
    is_active: bool
    pending_files: int
    processed_files: int
    failed_files: int = 0
    last_activity: datetime | None = None


@dataclass(frozen=True)
class StrategyContext:
    """Everything a strategy needs from its owner."""

    project_path: Path
    index_path: Path
    router: IndexRouter
    integrity: IntegrityEngine
    policy: IndexingPolicy
    config: IndexingConfig
    timeouts: TimeoutsConfig


class IndexingStrategy(ABC):
    """Base for realtime, lazy and git strategies.

    start() is called once by the orchestrator right after construction.
    stop() and flush() are safe to call repeatedly and after stop().
    """

    name: ClassVar[StrategyName]

    def __init__(self, context: StrategyContext) -> None:
        self._ctx = context
        self._active = False
        self._stopping = False
        self._pending: dict[str, None] = {}
        self._in_flight = 0
        self._processed = 0
        self._failed = 0
        self._last_activity: datetime | None = None
        self._pass_lock = asyncio.Lock()
        self._drain_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    # =========================================================================
    # Public contract
    # =========================================================================

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def pending_files(self) -> int:
        return len(self._pending) + self._in_flight

    @property
    def processed_files(self) -> int:
        return self._processed

    async def start(self) -> None:
        if self._active:
            return
        try:
            await self._on_start()
        except Exception:
            await self._stop_triggers()
            raise
        self._active = True
        logger.info(
            "strategy_started",
            strategy=self.name.value,
            project=str(self._ctx.project_path),
            pending=self.pending_files,
        )

    async def stop(self) -> None:
        """Stop consuming triggers and wait for in-flight work."""
        if not self._active or self._stopping:
            return
        self._stopping = True
        try:
            await self._stop_triggers()
            await self._before_stop()
            await self._wait_for_background()
            async with self._pass_lock:
                pass
        finally:
            self._active = False
            self._stopping = False
        logger.info(
            "strategy_stopped",
            strategy=self.name.value,
            processed=self._processed,
            failed=self._failed,
            pending=self.pending_files,
        )

    async def flush(self) -> None:
        """Process everything queued right now. No-op when inactive."""
        if not self._active:
            return
        await self._flush_pending()

    def get_stats(self) -> StrategyStats:
        return StrategyStats(
            name=self.name.value,
            is_active=self._active,
            pending_files=self.pending_files,
            processed_files=self._processed,
            failed_files=self._failed,
            last_activity=self._last_activity,
        )

    def notify(self, paths: Iterable[str | Path]) -> None:
        """Report changed paths (absolute or project-relative)."""
        if not self._active:
            return
        rels = [r for r in (self._to_rel(p) for p in paths) if r is not None]
        if not rels:
            return
        self._reload_policy_if_needed(rels)
        added = self._enqueue(rels)
        logger.debug("paths_queued", strategy=self.name.value, new=added, pending=self.pending_files)
        self._on_enqueued()

    # =========================================================================
    # Hooks
    # =========================================================================

    @abstractmethod
    async def _on_start(self) -> None:
        """Acquire triggers. Raise to refuse starting."""

    @abstractmethod
    async def _stop_triggers(self) -> None:
        """Release triggers. Must tolerate a partial or failed start."""

    def _on_enqueued(self) -> None:
        """Called after notify() adds paths."""

    async def _before_stop(self) -> None:
        """Runs after triggers are released, before waiting on background work."""

    async def _after_pass(self) -> None:
        """Runs after every processing pass, outside the mutation slot."""

    async def _flush_pending(self) -> None:
        await self._drain()

    # =========================================================================
    # Processing
    # =========================================================================

    def _enqueue(self, rel_paths: Iterable[str]) -> int:
        before = len(self._pending)
        for rel in rel_paths:
            self._pending[rel] = None
        return len(self._pending) - before

    def _schedule_drain(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = self._spawn(self._drain_until_empty())

    async def _drain_until_empty(self) -> None:
        while self._pending:
            try:
                await self._drain()
            except Exception as e:
                logger.error(
                    "strategy_pass_failed", strategy=self.name.value, error=str(e), exc_info=True
                )
                return

    async def _drain(self) -> None:
        """One processing pass over the queue."""
        async with self._pass_lock:
            if not self._pending:
                return
            processed_before = self._processed
            async with self._ctx.integrity.mutation_pass():
                while self._pending:
                    rel = next(iter(self._pending))
                    del self._pending[rel]
                    self._in_flight = 1
                    try:
                        outcome = await self._process_path(rel)
                    finally:
                        self._in_flight = 0
                        self._processed += 1
                        self._last_activity = datetime.now(UTC)
                    if not outcome.ok:
                        self._failed += 1
                    elif outcome.action in (FileAction.UPDATED, FileAction.REMOVED):
                        logger.debug("path_indexed", path=rel, action=outcome.action.value)
                self._save_fingerprints()
            logger.info(
                "strategy_pass_complete",
                strategy=self.name.value,
                processed=self._processed - processed_before,
                failed_total=self._failed,
            )
        await self._after_pass()

    async def _process_path(self, rel: str) -> FileOutcome:
        router = self._ctx.router
        target = router.target_for(rel)
        full = self._ctx.project_path / rel

        if full.is_symlink() or not full.is_file():
            if target.fingerprints.has(rel):
                return await unindex_file(router, rel)
            return FileOutcome(rel, FileAction.SKIPPED, reason="not on disk")

        decision = self._ctx.policy.should_index(rel)
        if not decision.should_index:
            if target.fingerprints.has(rel):
                return await unindex_file(router, rel)
            return FileOutcome(rel, FileAction.SKIPPED, reason=decision.reason)

        return await index_file(router, self._ctx.project_path, rel, skip_unchanged=True)

    def _save_fingerprints(self) -> None:
        try:
            self._ctx.router.save_dirty()
        except StorageError as e:
            logger.error("fingerprints_save_failed", strategy=self.name.value, error=e.message)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _wait_for_background(self) -> None:
        # Finished tasks may still await their discard callback
        while pending := [t for t in self._tasks if not t.done()]:
            await asyncio.wait(pending)
        self._tasks.clear()

    def _cancel_task(self, task: asyncio.Task[Any] | None) -> None:
        if task is not None and not task.done():
            task.cancel()

    def _build_watcher(self) -> FileWatcher:
        cfg = self._ctx.config
        return FileWatcher(
            project_root=self._ctx.project_path,
            on_change=self.notify,
            should_prune_dir=self._ctx.policy.should_prune_dir,
            debounce_window=cfg.debounce_sec,
            max_debounce_wait=cfg.max_debounce_wait_sec,
            force_polling=cfg.force_polling,
            stop_timeout=self._ctx.timeouts.watcher_stop_sec,
        )

    def _to_rel(self, path: str | Path) -> str | None:
        p = Path(path)
        if p.is_absolute():
            try:
                p = p.relative_to(self._ctx.project_path)
            except ValueError:
                return None
        rel = normalize_rel_path(p.as_posix())
        if not rel or rel == ".":
            return None
        return rel

    def _reload_policy_if_needed(self, rels: list[str]) -> None:
        policy = self._ctx.policy
        if isinstance(policy, PathPolicy) and any(Path(r).name in _IGNORE_FILES for r in rels):
            policy.reload()


async def cancel_and_wait(task: asyncio.Task[Any] | None, timeout: float) -> None:
    """Cancel a task and wait up to timeout seconds for it to finish."""
    if task is None or task.done():
        return
    task.cancel()
    with contextlib.suppress(asyncio.CancelledError, TimeoutError):
        await asyncio.wait_for(task, timeout=timeout)
