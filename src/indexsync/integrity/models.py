"""Read models produced by drift detection and reconciliation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal


@dataclass(frozen=True)
class DriftReport:
    """Partition of the audited files into exactly one bucket each."""

    added: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    in_sync: int = 0
    last_checked: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def empty(cls) -> DriftReport:
        return cls()

    @property
    def total_drift(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)

    @property
    def has_drift(self) -> bool:
        return self.total_drift > 0

    @property
    def total_files(self) -> int:
        return self.total_drift + self.in_sync

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": list(self.added),
            "modified": list(self.modified),
            "removed": list(self.removed),
            "in_sync": self.in_sync,
            "last_checked": self.last_checked.isoformat(),
        }


@dataclass
class ReconcileResult:
    """Outcome of a reconciliation pass. Counts cover successful operations only."""

    success: bool = True
    files_added: int = 0
    files_modified: int = 0
    files_removed: int = 0
    duration_ms: float = 0.0
    errors: list[str] = field(default_factory=list)

    @property
    def files_changed(self) -> int:
        """Total files that were brought back in sync."""
        return self.files_added + self.files_modified + self.files_removed

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "files_added": self.files_added,
            "files_modified": self.files_modified,
            "files_removed": self.files_removed,
            "duration_ms": self.duration_ms,
            "errors": list(self.errors),
        }


ReconcilePhase = Literal["removing", "adding", "modifying"]


@dataclass(frozen=True, slots=True)
class ReconcileProgress:
    """Progress of one reconciliation phase."""

    phase: ReconcilePhase
    current: int
    total: int
    current_file: str | None = None
