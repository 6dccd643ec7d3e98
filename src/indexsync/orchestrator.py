"""Owns the single active indexing strategy.

Switching is destructive: the old strategy is flushed and stopped before
the new one is resolved and started. If the new strategy cannot be created
or refuses to start, no strategy is current afterwards; callers check
is_active() rather than assume the previous strategy survived.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog

from indexsync.config.models import IndexingConfig, TimeoutsConfig
from indexsync.core.errors import ConfigurationError, StateError, StorageError
from indexsync.core.logging import set_active_strategy
from indexsync.index.protocols import IndexMutator
from indexsync.index.routing import IndexRouter
from indexsync.integrity.engine import IntegrityEngine
from indexsync.policy.policy import IndexingPolicy
from indexsync.storage.fingerprints import FingerprintStore
from indexsync.strategies import STRATEGY_TYPES
from indexsync.strategies.base import (
    IndexingStrategy,
    StrategyContext,
    StrategyName,
    StrategyStats,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class OrchestratorDependencies:
    """Collaborators fixed for the orchestrator's lifetime."""

    project_path: Path
    index_path: Path
    index: IndexMutator
    integrity: IntegrityEngine
    policy: IndexingPolicy
    fingerprints: FingerprintStore
    docs_index: IndexMutator | None = None
    docs_fingerprints: FingerprintStore | None = None
    timeouts: TimeoutsConfig | None = None


class StrategyOrchestrator:
    """Creates, switches, flushes and stops the current strategy."""

    def __init__(self, deps: OrchestratorDependencies) -> None:
        self._deps = deps
        self._router = IndexRouter(
            deps.index,
            deps.fingerprints,
            docs_index=deps.docs_index,
            docs_fingerprints=deps.docs_fingerprints,
        )
        self._current: IndexingStrategy | None = None
        self._shut_down = False

    def get_project_path(self) -> Path:
        return self._deps.project_path

    def get_index_path(self) -> Path:
        return self._deps.index_path

    def get_current_strategy(self) -> IndexingStrategy | None:
        return self._current

    def get_stats(self) -> StrategyStats | None:
        if self._current is None:
            return None
        return self._current.get_stats()

    def is_active(self) -> bool:
        return self._current is not None

    async def set_strategy(self, config: IndexingConfig) -> IndexingStrategy:
        """Install the strategy named by config.indexing_strategy.

        Raises:
            StateError: The orchestrator has been shut down.
            ConfigurationError: Unknown strategy name.
            PreconditionError: The strategy cannot run against this project.
        """
        if self._shut_down:
            raise StateError.orchestrator_shutdown()

        requested = config.indexing_strategy
        current = self._current
        if current is not None and current.name.value == requested and current.is_active:
            logger.debug("strategy_unchanged", strategy=requested)
            return current

        if current is not None:
            logger.info("strategy_switching", previous=current.name.value, requested=requested)
            await self._teardown(current)

        strategy = self._create(requested, config)
        await strategy.start()
        self._current = strategy
        set_active_strategy(strategy.name.value)
        return strategy

    async def flush(self) -> None:
        """Flush the current strategy. Never raises."""
        if self._current is None:
            return
        try:
            await self._current.flush()
        except Exception as e:
            logger.error("strategy_flush_failed", strategy=self._current.name.value, error=str(e))

    async def stop(self) -> None:
        """Flush and stop the current strategy, leaving none current. Idempotent."""
        current = self._current
        if current is None:
            return
        await self._teardown(current)

    async def shutdown(self) -> None:
        """Stop everything, persist fingerprints and close the indexes.

        After this, set_strategy raises StateError; flush and stop are no-ops.
        """
        if self._shut_down:
            return
        self._shut_down = True
        await self.stop()
        self._deps.integrity.stop_periodic_check()
        try:
            self._router.save_dirty()
        except StorageError as e:
            logger.error("fingerprints_save_failed", error=e.message)
        for target in self._router.targets():
            try:
                await target.index.close()
            except Exception as e:
                logger.warning("index_close_failed", index=target.kind, error=str(e))
        logger.info("orchestrator_shutdown", project=str(self._deps.project_path))

    async def _teardown(self, strategy: IndexingStrategy) -> None:
        # Slot is cleared even if flush/stop fail, so is_active() reflects reality
        self._current = None
        set_active_strategy(None)
        try:
            await strategy.flush()
        except Exception as e:
            logger.error("strategy_flush_failed", strategy=strategy.name.value, error=str(e))
        try:
            await strategy.stop()
        except Exception as e:
            logger.error("strategy_stop_failed", strategy=strategy.name.value, error=str(e))

    def _create(self, requested: str, config: IndexingConfig) -> IndexingStrategy:
        try:
            name = StrategyName(requested)
        except ValueError:
            raise ConfigurationError.unknown_strategy(requested, StrategyName.values()) from None
        context = StrategyContext(
            project_path=self._deps.project_path,
            index_path=self._deps.index_path,
            router=self._router,
            integrity=self._deps.integrity,
            policy=self._deps.policy,
            config=config,
            timeouts=self._deps.timeouts or TimeoutsConfig(),
        )
        return STRATEGY_TYPES[name](context)
