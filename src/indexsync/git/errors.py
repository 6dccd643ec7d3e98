"""Errors raised by repository access.

The git strategy converts these into PreconditionError at start time and
falls back to a full rescan when a recorded commit has gone missing.
"""


class GitError(Exception):
    """Base error for git operations."""


class NotARepositoryError(GitError):
    """No repository could be opened at path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class RefNotFoundError(GitError):
    """Commit id or ref does not resolve to a commit."""

    def __init__(self, ref: str) -> None:
        super().__init__(f"Commit not found: {ref}")
        self.ref = ref


class DiffError(GitError):
    """Tree-to-tree diff failed."""

    def __init__(self, base: str | None, target: str, reason: str) -> None:
        super().__init__(f"Failed to diff {base or '<empty>'}..{target}: {reason}")
        self.base = base
        self.target = target
