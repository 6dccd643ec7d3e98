"""File eligibility: ignore patterns and the indexing policy."""

from indexsync.policy.ignore import IGNORE_FILE_NAME, IgnoreChecker
from indexsync.policy.policy import (
    IndexingPolicy,
    PathPolicy,
    PolicyDecision,
    normalize_rel_path,
)

__all__ = [
    "IGNORE_FILE_NAME",
    "IgnoreChecker",
    "IndexingPolicy",
    "PathPolicy",
    "PolicyDecision",
    "normalize_rel_path",
]
