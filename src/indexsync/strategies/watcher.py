"""File watcher using watchfiles for async filesystem monitoring.

Design:
- One recursive awatch over the project root
- A watch filter drops events under pruned directories before they reach Python
- Sliding-window debounce batches bursts (editor saves, checkouts)
- Falls back to polling for cross-filesystem mounts (WSL /mnt/*, network drives)
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import structlog
from watchfiles import Change, awatch

from indexsync.core.excludes import is_hardcoded_dir

logger = structlog.get_logger()

# Debouncing configuration
DEBOUNCE_WINDOW_SEC = 0.5  # Sliding window for batching rapid changes
MAX_DEBOUNCE_WAIT_SEC = 2.0  # Maximum wait before forcing flush


def is_cross_filesystem(path: Path) -> bool:
    """Detect cross-filesystem mounts where native notifications are unreliable."""
    path_str = str(path.resolve())
    # WSL accessing Windows drives: /mnt/c/, /mnt/d/, but not /mnt/data/
    if (
        path_str.startswith("/mnt/")
        and len(path_str) > 6
        and path_str[5].isalpha()
        and path_str[6] == "/"
    ):
        return True
    return path_str.startswith(("/run/user/", "/media/", "/net/"))


def summarize_changes_by_type(paths: list[Path]) -> str:
    """Human-readable summary like "3 .py files, 1 .md file"."""
    counts: Counter[str] = Counter(p.suffix.lower() or "(none)" for p in paths)
    parts: list[str] = []
    for ext, count in counts.most_common(3):
        parts.append(f"{count} {ext} {'file' if count == 1 else 'files'}")
    remaining = len(paths) - sum(c for _, c in counts.most_common(3))
    if remaining > 0:
        parts.append(f"{remaining} {'other' if remaining == 1 else 'others'}")
    return ", ".join(parts)


@dataclass
class FileWatcher:
    """Async file watcher with sliding-window debouncing.

    on_change receives batches of project-relative paths. Deleted and
    modified files are reported the same way; the consumer checks the disk.
    """

    project_root: Path
    on_change: Callable[[list[Path]], None]
    should_prune_dir: Callable[[str], bool] = is_hardcoded_dir
    debounce_window: float = DEBOUNCE_WINDOW_SEC
    max_debounce_wait: float = MAX_DEBOUNCE_WAIT_SEC
    force_polling: bool = False
    stop_timeout: float = 2.0

    _watch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _debounce_task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)
    _pending_changes: set[Path] = field(default_factory=set, init=False)
    _last_change_time: float = field(default=0.0, init=False)
    _first_change_time: float = field(default=0.0, init=False)

    @property
    def is_running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def start(self) -> None:
        """Start watching for file changes."""
        if self._watch_task is not None:
            return

        polling = self.force_polling or is_cross_filesystem(self.project_root)
        self._stop_event.clear()
        self._watch_task = asyncio.create_task(self._watch_loop(polling))
        self._debounce_task = asyncio.create_task(self._debounce_flush_loop())
        logger.info(
            "file_watcher_started",
            project_root=str(self.project_root),
            mode="polling" if polling else "native",
            debounce_window=self.debounce_window,
        )

    async def stop(self) -> None:
        """Stop watching. Pending changes are delivered before returning."""
        if self._watch_task is None:
            return
        self._stop_event.set()

        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._debounce_task
        self._debounce_task = None

        if self._pending_changes:
            self._flush_pending()

        self._watch_task.cancel()
        with contextlib.suppress(asyncio.CancelledError, TimeoutError):
            await asyncio.wait_for(self._watch_task, timeout=self.stop_timeout)
        self._watch_task = None

        logger.info("file_watcher_stopped", project_root=str(self.project_root))

    def _queue_change(self, path: Path) -> None:
        now = time.monotonic()
        if not self._pending_changes:
            self._first_change_time = now
        self._pending_changes.add(path)
        self._last_change_time = now

    def _should_flush(self) -> bool:
        if not self._pending_changes:
            return False
        now = time.monotonic()
        # Flush if quiet window elapsed OR max wait exceeded
        return (
            now - self._last_change_time >= self.debounce_window
            or now - self._first_change_time >= self.max_debounce_wait
        )

    def _flush_pending(self) -> None:
        if not self._pending_changes:
            return
        paths = sorted(self._pending_changes)
        self._pending_changes.clear()
        self._first_change_time = 0.0
        self._last_change_time = 0.0

        logger.info("changes_detected", count=len(paths), summary=summarize_changes_by_type(paths))
        try:
            self.on_change(paths)
        except Exception as e:
            logger.error("change_callback_failed", error=str(e), exc_info=True)

    async def _debounce_flush_loop(self) -> None:
        while not self._stop_event.is_set():
            await asyncio.sleep(0.1)
            if self._should_flush():
                self._flush_pending()

    def _accept(self, _change: Change, path_str: str) -> bool:
        """awatch filter: drop anything below a pruned directory."""
        try:
            rel = Path(path_str).relative_to(self.project_root)
        except ValueError:
            return False
        return not any(self.should_prune_dir(part) for part in rel.parts[:-1])

    async def _watch_loop(self, polling: bool) -> None:
        while not self._stop_event.is_set():
            try:
                async for changes in awatch(
                    self.project_root,
                    watch_filter=self._accept,
                    recursive=True,
                    force_polling=polling or None,
                    step=200,
                    rust_timeout=5_000,
                    stop_event=self._stop_event,
                    ignore_permission_denied=True,
                ):
                    self._handle_changes(changes)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if self._stop_event.is_set():
                    return
                logger.error("watcher_error", error=str(e))
                # Brief backoff before retry
                await asyncio.sleep(1.0)

    def _handle_changes(self, changes: set[tuple[Change, str]]) -> None:
        for change_type, path_str in changes:
            path = Path(path_str)
            try:
                rel_path = path.relative_to(self.project_root)
            except ValueError:
                continue
            # Directories themselves are not indexed
            if change_type != Change.deleted and path.is_dir():
                continue
            self._queue_change(rel_path)
            logger.debug("path_queued", path=str(rel_path), change_type=change_type.name)
