"""Drift detection, reconciliation and scheduled audits."""

from indexsync.integrity.engine import INDEXING_IN_PROGRESS, IntegrityEngine
from indexsync.integrity.models import (
    DriftReport,
    ReconcileProgress,
    ReconcileResult,
)
from indexsync.integrity.scheduler import PeriodicCheck

__all__ = [
    "INDEXING_IN_PROGRESS",
    "DriftReport",
    "IntegrityEngine",
    "PeriodicCheck",
    "ReconcileProgress",
    "ReconcileResult",
]
