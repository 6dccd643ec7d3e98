"""Cancellable repeating task with a single-slot busy flag."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()


@dataclass
class PeriodicCheck:
    """Runs a coroutine function every interval_sec seconds.

    A tick or manual trigger that arrives while a run is in progress is
    dropped rather than queued. Failures are logged and recorded; the loop
    keeps going.
    """

    check: Callable[[], Awaitable[object]]
    name: str = "integrity_check"

    runs: int = field(default=0, init=False)
    skipped: int = field(default=0, init=False)
    last_error: str | None = field(default=None, init=False)
    _task: asyncio.Task[None] | None = field(default=None, init=False)
    _busy: bool = field(default=False, init=False)
    _interval_sec: float | None = field(default=None, init=False)

    @property
    def interval_sec(self) -> float | None:
        return self._interval_sec

    @property
    def busy(self) -> bool:
        return self._busy

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval_sec: float) -> None:
        """Start the loop. No-op if already running."""
        if self.is_running():
            logger.debug("periodic_check_already_running", name=self.name)
            return
        if interval_sec <= 0:
            raise ValueError(f"interval_sec must be positive, got {interval_sec}")
        self._interval_sec = interval_sec
        self._task = asyncio.get_running_loop().create_task(self._loop(interval_sec))
        logger.info("periodic_check_started", name=self.name, interval_sec=interval_sec)

    def stop(self) -> None:
        """Cancel the loop. Idempotent."""
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
        self._task = None
        logger.info("periodic_check_stopped", name=self.name)

    async def trigger(self) -> bool:
        """Run the check now unless one is already in progress.

        Returns True if the check ran (successfully or not).
        """
        if self._busy:
            self.skipped += 1
            logger.debug("periodic_check_coalesced", name=self.name)
            return False

        self._busy = True
        try:
            await self.check()
            self.last_error = None
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.last_error = str(e)
            logger.error("periodic_check_failed", name=self.name, error=str(e), exc_info=True)
        finally:
            self.runs += 1
            self._busy = False
        return True

    async def _loop(self, interval_sec: float) -> None:
        while True:
            await asyncio.sleep(interval_sec)
            await self.trigger()
