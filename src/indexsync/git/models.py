"""Git data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pygit2.enums import DeltaStatus as _GitDelta

DeltaStatus = Literal["added", "deleted", "modified", "renamed", "copied", "typechange", "unknown"]

_DELTA_STATUS_MAP: dict[int, DeltaStatus] = {
    _GitDelta.ADDED: "added",
    _GitDelta.DELETED: "deleted",
    _GitDelta.MODIFIED: "modified",
    _GitDelta.RENAMED: "renamed",
    _GitDelta.COPIED: "copied",
    _GitDelta.TYPECHANGE: "typechange",
}


def delta_status(raw: int) -> DeltaStatus:
    return _DELTA_STATUS_MAP.get(raw, "unknown")


@dataclass(frozen=True, slots=True)
class DiffFile:
    """One file touched between two commits."""

    old_path: str | None
    new_path: str | None
    status: DeltaStatus

    @property
    def paths(self) -> tuple[str, ...]:
        """Every path whose index entry may need to change."""
        if self.status == "renamed" and self.old_path and self.new_path:
            return (self.old_path, self.new_path)
        path = self.new_path or self.old_path
        return (path,) if path else ()
