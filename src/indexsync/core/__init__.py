"""Core module exports."""

from indexsync.core.errors import (
    ConfigurationError,
    ErrorCode,
    IndexSyncError,
    InternalError,
    PreconditionError,
    StateError,
    StorageError,
    TransientIOError,
)
from indexsync.core.logging import (
    configure_logging,
    get_active_strategy,
    get_logger,
    set_active_strategy,
)

__all__ = [
    # Errors
    "ConfigurationError",
    "ErrorCode",
    "IndexSyncError",
    "InternalError",
    "PreconditionError",
    "StateError",
    "StorageError",
    "TransientIOError",
    # Logging
    "configure_logging",
    "get_active_strategy",
    "get_logger",
    "set_active_strategy",
]
