"""Indexing strategies: realtime, lazy and git."""

from indexsync.strategies.base import (
    IndexingStrategy,
    StrategyContext,
    StrategyName,
    StrategyStats,
)
from indexsync.strategies.git import GitStrategy
from indexsync.strategies.lazy import LazyStrategy
from indexsync.strategies.realtime import RealtimeStrategy
from indexsync.strategies.watcher import FileWatcher

STRATEGY_TYPES: dict[StrategyName, type[IndexingStrategy]] = {
    StrategyName.REALTIME: RealtimeStrategy,
    StrategyName.LAZY: LazyStrategy,
    StrategyName.GIT: GitStrategy,
}

__all__ = [
    "STRATEGY_TYPES",
    "FileWatcher",
    "GitStrategy",
    "IndexingStrategy",
    "LazyStrategy",
    "RealtimeStrategy",
    "StrategyContext",
    "StrategyName",
    "StrategyStats",
]
