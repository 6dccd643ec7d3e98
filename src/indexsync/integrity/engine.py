"""Drift detection and reconciliation between fingerprints and the filesystem.

The engine walks the project, filters through the IndexingPolicy, hashes
each eligible file and compares against the fingerprint stores. Reconcile
pushes the differences through the index collaborators.

Writers are serialized through mutation_pass(): strategies enter it for
every processing pass and reconcile enters it for its whole run. While a
pass is active the indexing flag is raised and scheduled checks skip.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import structlog

from indexsync.config.models import IntegrityConfig
from indexsync.core.errors import StorageError
from indexsync.index.apply import FileOutcome, index_file, unindex_file
from indexsync.index.routing import IndexRouter
from indexsync.integrity.models import (
    DriftReport,
    ReconcilePhase,
    ReconcileProgress,
    ReconcileResult,
)
from indexsync.integrity.scheduler import PeriodicCheck
from indexsync.policy.policy import IndexingPolicy
from indexsync.storage.fingerprints import hash_file

logger = structlog.get_logger()

INDEXING_IN_PROGRESS = "Indexing is already in progress"

ProgressCallback = Callable[[ReconcileProgress], None]


class IntegrityEngine:
    """Audits fingerprint stores against the filesystem and repairs drift."""

    def __init__(
        self,
        project_path: Path,
        router: IndexRouter,
        policy: IndexingPolicy,
        config: IntegrityConfig | None = None,
    ) -> None:
        self._project_path = project_path
        self._router = router
        self._policy = policy
        self._config = config or IntegrityConfig()
        self._indexing_active = False
        self._mutation_lock = asyncio.Lock()
        self._last_report: DriftReport | None = None
        self._scheduler = PeriodicCheck(self.run_scheduled_check)

    @property
    def project_path(self) -> Path:
        return self._project_path

    @property
    def router(self) -> IndexRouter:
        return self._router

    @property
    def last_report(self) -> DriftReport | None:
        return self._last_report

    @property
    def last_error(self) -> str | None:
        """Error from the most recent scheduled check, if it failed."""
        return self._scheduler.last_error

    # =========================================================================
    # Writer exclusion
    # =========================================================================

    def set_indexing_active(self, active: bool) -> None:
        self._indexing_active = active

    def is_indexing_active(self) -> bool:
        return self._indexing_active

    @contextlib.asynccontextmanager
    async def mutation_pass(self) -> AsyncIterator[None]:
        """Hold the writer slot and raise the indexing flag for its duration."""
        async with self._mutation_lock:
            self._indexing_active = True
            try:
                yield
            finally:
                self._indexing_active = False

    # =========================================================================
    # Drift
    # =========================================================================

    async def check_drift(self) -> DriftReport:
        """Compare eligible files on disk against recorded fingerprints.

        Read-only: neither the stores nor the index are touched.
        """
        started = time.perf_counter()
        recorded = self._router.tracked_paths()
        loop = asyncio.get_running_loop()
        report = await loop.run_in_executor(None, self._compute_drift, recorded)
        self._last_report = report
        logger.info(
            "drift_check_complete",
            added=len(report.added),
            modified=len(report.modified),
            removed=len(report.removed),
            in_sync=report.in_sync,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return report

    def _compute_drift(self, recorded: dict[str, str]) -> DriftReport:
        current, unreadable = self._scan()

        added: list[str] = []
        modified: list[str] = []
        in_sync = 0
        for path, content_hash in current.items():
            known = recorded.get(path)
            if known is None:
                added.append(path)
            elif known != content_hash:
                modified.append(path)
            else:
                in_sync += 1
        removed = [p for p in recorded if p not in current and p not in unreadable]

        return DriftReport(
            added=tuple(sorted(added)),
            modified=tuple(sorted(modified)),
            removed=tuple(sorted(removed)),
            in_sync=in_sync,
        )

    def _scan(self) -> tuple[dict[str, str], set[str]]:
        """Hash every eligible regular file. Runs in a worker thread.

        Returns (path -> hash, paths that exist but could not be read).
        """
        hashes: dict[str, str] = {}
        unreadable: set[str] = set()
        root = self._project_path

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = [d for d in dirnames if not self._policy.should_prune_dir(d)]
            for filename in filenames:
                full = Path(dirpath) / filename
                if full.is_symlink() or not full.is_file():
                    continue
                rel = full.relative_to(root).as_posix()
                if not self._policy.should_index(rel).should_index:
                    continue
                try:
                    hashes[rel] = hash_file(full)
                except OSError as e:
                    unreadable.add(rel)
                    logger.debug("drift_scan_unreadable", path=rel, error=str(e))
        return hashes, unreadable

    # =========================================================================
    # Reconcile
    # =========================================================================

    async def reconcile(
        self,
        report: DriftReport | None = None,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> ReconcileResult:
        """Bring the index and fingerprints in line with the filesystem.

        Removals run first, then additions, then modifications. A failed file
        is excluded from the counts and marks the result unsuccessful; the
        remaining files are still processed.
        """
        if self._indexing_active:
            logger.warning("reconcile_refused", reason="indexing_active")
            return ReconcileResult(success=False, errors=[INDEXING_IN_PROGRESS])

        async with self.mutation_pass():
            return await self._reconcile_locked(report, on_progress)

    async def _reconcile_locked(
        self,
        report: DriftReport | None,
        on_progress: ProgressCallback | None,
    ) -> ReconcileResult:
        # Caller holds mutation_pass()
        started = time.perf_counter()
        result = ReconcileResult()
        if report is None:
            report = await self.check_drift()

        removed = await self._run_phase("removing", report.removed, on_progress)
        added = await self._run_phase("adding", report.added, on_progress)
        modified = await self._run_phase("modifying", report.modified, on_progress)

        result.files_removed = _fold(result, removed)
        result.files_added = _fold(result, added)
        result.files_modified = _fold(result, modified)

        try:
            self._router.save_dirty()
        except StorageError as e:
            result.success = False
            result.errors.append(e.message)
            logger.error("fingerprints_save_failed", error=e.message)

        result.duration_ms = round((time.perf_counter() - started) * 1000, 1)
        logger.info(
            "reconcile_complete",
            success=result.success,
            added=result.files_added,
            modified=result.files_modified,
            removed=result.files_removed,
            errors=len(result.errors),
            duration_ms=result.duration_ms,
        )
        return result

    async def _run_phase(
        self,
        phase: ReconcilePhase,
        paths: tuple[str, ...],
        on_progress: ProgressCallback | None,
    ) -> list[FileOutcome]:
        outcomes: list[FileOutcome] = []
        total = len(paths)
        for i, path in enumerate(paths, start=1):
            if on_progress is not None:
                on_progress(ReconcileProgress(phase, i, total, path))
            if phase == "removing":
                outcomes.append(await unindex_file(self._router, path))
            else:
                outcomes.append(await index_file(self._router, self._project_path, path))
        return outcomes

    # =========================================================================
    # Scheduling
    # =========================================================================

    async def run_scheduled_check(self) -> DriftReport | None:
        """One scheduled tick: check, and reconcile if configured to.

        Skipped (returns None) while another writer holds the mutation slot.
        Otherwise the slot is held for the scan and any reconcile, so no
        strategy pass can change the index between the two.
        """
        if self._indexing_active or self._mutation_lock.locked():
            logger.debug("scheduled_check_skipped", reason="indexing_active")
            return None
        async with self.mutation_pass():
            report = await self.check_drift()
            if report.has_drift and self._config.auto_reconcile:
                await self._reconcile_locked(report, None)
        return report

    async def trigger_check(self) -> bool:
        """Run a scheduled-style check now, coalescing with one in progress."""
        return await self._scheduler.trigger()

    def start_periodic_check(self, interval_sec: float | None = None) -> None:
        self._scheduler.start(
            interval_sec if interval_sec is not None else self._config.check_interval_sec
        )

    def stop_periodic_check(self) -> None:
        self._scheduler.stop()

    def is_periodic_check_running(self) -> bool:
        return self._scheduler.is_running()

    async def run_startup_check(self) -> DriftReport:
        """Drift check for bootstrap. Logs and returns an empty report on failure."""
        try:
            report = await self.check_drift()
        except Exception as e:
            logger.error("startup_check_failed", error=str(e), exc_info=True)
            return DriftReport.empty()
        if report.has_drift:
            logger.warning(
                "startup_drift_detected",
                added=len(report.added),
                modified=len(report.modified),
                removed=len(report.removed),
            )
        return report


def _fold(result: ReconcileResult, outcomes: list[FileOutcome]) -> int:
    succeeded = 0
    for outcome in outcomes:
        if outcome.ok:
            succeeded += 1
            continue
        result.success = False
        if outcome.error is not None:
            result.errors.append(outcome.error.message)
    return succeeded
