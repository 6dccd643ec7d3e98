"""Git access for commit-driven indexing."""

from indexsync.git.errors import DiffError, GitError, NotARepositoryError, RefNotFoundError
from indexsync.git.models import DiffFile
from indexsync.git.ops import REFLOG_MARKER, GitOps, reflog_marker

__all__ = [
    "DiffError",
    "DiffFile",
    "GitError",
    "GitOps",
    "NotARepositoryError",
    "REFLOG_MARKER",
    "RefNotFoundError",
    "reflog_marker",
]
