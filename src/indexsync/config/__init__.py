"""Config module exports."""

from indexsync.config.loader import load_config, resolve_index_path
from indexsync.config.models import (
    IndexingConfig,
    IndexSyncConfig,
    IntegrityConfig,
    LoggingConfig,
    PolicyConfig,
    TimeoutsConfig,
)

__all__ = [
    "load_config",
    "resolve_index_path",
    "IndexSyncConfig",
    "IndexingConfig",
    "IntegrityConfig",
    "LoggingConfig",
    "PolicyConfig",
    "TimeoutsConfig",
]
