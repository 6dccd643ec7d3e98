"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (INDEXSYNC__SECTION__KEY)
3. Repo YAML (.indexsync/config.yaml)
4. Global YAML (~/.config/indexsync/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    INDEXSYNC__<SECTION>__<KEY>=<VALUE>

Examples:
    INDEXSYNC__LOGGING__LEVEL=DEBUG
    INDEXSYNC__INDEXING__INDEXING_STRATEGY=lazy
    INDEXSYNC__INTEGRITY__CHECK_INTERVAL_SEC=3600
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration.

    Env vars: Not directly configurable via env (use YAML for multi-output).
    """

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        INDEXSYNC__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every queued path.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class IndexingConfig(BaseModel):
    """Strategy selection and trigger tuning.

    The strategy name is kept as a plain string; the orchestrator resolves it
    and rejects unknown names with a ConfigurationError.

    Env vars:
        INDEXSYNC__INDEXING__INDEXING_STRATEGY: realtime, lazy or git
        INDEXSYNC__INDEXING__DEBOUNCE_SEC: Watcher quiet window
        INDEXSYNC__INDEXING__LAZY_IDLE_THRESHOLD_SEC: Idle time before a lazy flush
    """

    indexing_strategy: str = Field(
        default="realtime",
        description="Triggering policy: realtime, lazy or git.",
    )
    debounce_sec: float = Field(
        default=0.5,
        description="Quiet window before a batch of filesystem changes is delivered.",
    )
    max_debounce_wait_sec: float = Field(
        default=2.0,
        description="Upper bound on how long a burst of changes is held back.",
    )
    lazy_idle_threshold_sec: float = Field(
        default=30.0,
        description="Lazy strategy flushes after this much inactivity. 0 disables the idle flush.",
    )
    git_debounce_sec: float = Field(
        default=2.0,
        description="Debounce for reflog changes. Rebases and merges write HEAD several times.",
    )
    force_polling: bool = Field(
        default=False,
        description="Poll instead of using native notifications (network mounts, WSL /mnt/*).",
    )

    @field_validator("indexing_strategy")
    @classmethod
    def normalize_strategy(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("debounce_sec", "max_debounce_wait_sec", "git_debounce_sec")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v

    @field_validator("lazy_idle_threshold_sec")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Must be >= 0, got {v}")
        return v


class PolicyConfig(BaseModel):
    """File eligibility rules.

    Env vars:
        INDEXSYNC__POLICY__MAX_FILE_SIZE_MB: Skip files larger than this
        INDEXSYNC__POLICY__RESPECT_GITIGNORE: Apply .gitignore patterns
    """

    max_file_size_mb: float = Field(
        default=1.0,
        description="Skip files larger than this (MB). "
        "RISK: Setting too high lets generated or minified files into the index.",
    )
    excluded_extensions: list[str] = Field(
        default_factory=lambda: [".min.js", ".min.css", ".map"],
        description="File name suffixes to exclude from indexing.",
    )
    respect_gitignore: bool = Field(
        default=True,
        description="Apply .gitignore patterns in addition to .idxignore.",
    )
    extra_ignore_patterns: list[str] = Field(
        default_factory=list,
        description="Additional glob patterns to exclude, relative to the project root.",
    )
    binary_sniff_bytes: int = Field(
        default=8192,
        description="Bytes read from unknown files when checking for binary content.",
    )

    @field_validator("max_file_size_mb")
    @classmethod
    def validate_size(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v


class IntegrityConfig(BaseModel):
    """Drift detection schedule.

    Env vars:
        INDEXSYNC__INTEGRITY__CHECK_INTERVAL_SEC: Seconds between scheduled drift checks
        INDEXSYNC__INTEGRITY__AUTO_RECONCILE: Reconcile automatically when drift is found
    """

    check_interval_sec: float = Field(
        default=24 * 60 * 60,
        description="Seconds between scheduled drift checks.",
    )
    auto_reconcile: bool = Field(
        default=False,
        description="Reconcile automatically when a scheduled check finds drift.",
    )
    startup_check: bool = Field(
        default=True,
        description="Run a drift check once when the index is opened.",
    )

    @field_validator("check_interval_sec")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Must be positive, got {v}")
        return v


class TimeoutsConfig(BaseModel):
    """Timeout configuration.

    Env vars:
        INDEXSYNC__TIMEOUTS__WATCHER_STOP_SEC: File watcher shutdown timeout
    """

    watcher_stop_sec: float = Field(
        default=2.0,
        description="File watcher shutdown timeout.",
    )


class IndexSyncConfig(BaseModel):
    """Root configuration for IndexSync.

    All settings can be configured via:
    1. Environment variables: INDEXSYNC__SECTION__KEY
    2. YAML config files (repo or global)
    3. Direct kwargs to load_config()
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    integrity: IntegrityConfig = Field(default_factory=IntegrityConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    index_path: str | None = Field(
        default=None,
        description="Override index storage location. Default: .indexsync/ in the project.",
    )
