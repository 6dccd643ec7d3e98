"""IndexSync error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Strategy lifecycle (preconditions, state)
- 4xxx: Storage and file IO
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_UNKNOWN_STRATEGY = 2003

    # Strategy lifecycle (3xxx)
    PRECONDITION_NOT_A_REPOSITORY = 3001
    PRECONDITION_FAILED = 3002
    STATE_ORCHESTRATOR_SHUTDOWN = 3101
    STATE_STORE_NOT_LOADED = 3102

    # Storage and IO (4xxx)
    STORAGE_CORRUPT = 4001
    STORAGE_WRITE_FAILED = 4002
    FILE_HASH_FAILED = 4101
    FILE_UPDATE_FAILED = 4102
    FILE_REMOVE_FAILED = 4103

    # Internal (9xxx)
    INTERNAL_ERROR = 9001
    INTERNAL_TIMEOUT = 9002


@dataclass(frozen=True, slots=True)
class IndexSyncError(Exception):
    """Base error with structured context for callers and logs."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_UNKNOWN_STRATEGY')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON responses."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigurationError(IndexSyncError):
    """Configuration-related errors."""

    @classmethod
    def unknown_strategy(cls, name: str, supported: list[str]) -> "ConfigurationError":
        return cls(
            code=ErrorCode.CONFIG_UNKNOWN_STRATEGY,
            message=f"Unknown indexing strategy: '{name}' (supported: {', '.join(supported)})",
            details={"name": name, "supported": supported},
        )

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigurationError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigurationError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class PreconditionError(IndexSyncError):
    """A strategy cannot start against the current project state."""

    @classmethod
    def not_a_repository(cls, path: str, marker: str) -> "PreconditionError":
        return cls(
            code=ErrorCode.PRECONDITION_NOT_A_REPOSITORY,
            message=f"Git strategy requires a repository with a reflog at {marker}",
            details={"path": path, "marker": marker},
        )

    @classmethod
    def failed(cls, reason: str, **details: Any) -> "PreconditionError":
        return cls(
            code=ErrorCode.PRECONDITION_FAILED,
            message=reason,
            details=details,
        )


class TransientIOError(IndexSyncError):
    """A single file operation failed. Recovered locally by the caller."""

    @classmethod
    def hash_failed(cls, path: str, reason: str) -> "TransientIOError":
        return cls(
            code=ErrorCode.FILE_HASH_FAILED,
            message=f"Failed to hash {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )

    @classmethod
    def update_failed(cls, path: str, reason: str) -> "TransientIOError":
        return cls(
            code=ErrorCode.FILE_UPDATE_FAILED,
            message=f"Failed to update {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )

    @classmethod
    def remove_failed(cls, path: str, reason: str) -> "TransientIOError":
        return cls(
            code=ErrorCode.FILE_REMOVE_FAILED,
            message=f"Failed to remove {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )


class StateError(IndexSyncError):
    """Operation attempted against an object in the wrong lifecycle state."""

    @classmethod
    def orchestrator_shutdown(cls) -> "StateError":
        return cls(
            code=ErrorCode.STATE_ORCHESTRATOR_SHUTDOWN,
            message="Orchestrator has been shut down",
        )

    @classmethod
    def store_not_loaded(cls, path: str) -> "StateError":
        return cls(
            code=ErrorCode.STATE_STORE_NOT_LOADED,
            message=f"Store not loaded: {path}. Call load() first.",
            details={"path": path},
        )


class StorageError(IndexSyncError):
    """Persisted state could not be read or written."""

    @classmethod
    def corrupt(cls, path: str, reason: str) -> "StorageError":
        return cls(
            code=ErrorCode.STORAGE_CORRUPT,
            message=f"Corrupt store at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def write_failed(cls, path: str, reason: str) -> "StorageError":
        return cls(
            code=ErrorCode.STORAGE_WRITE_FAILED,
            message=f"Failed to write {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )


class InternalError(IndexSyncError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )

    @classmethod
    def timeout(cls, operation: str, seconds: float) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_TIMEOUT,
            message=f"Timed out after {seconds:.1f}s: {operation}",
            details={"operation": operation, "seconds": seconds},
        )
