"""Read-only repository access for commit-driven indexing."""

from __future__ import annotations

from pathlib import Path

import pygit2

from indexsync.git.errors import DiffError, NotARepositoryError, RefNotFoundError
from indexsync.git.models import DiffFile, delta_status

REFLOG_MARKER = Path(".git") / "logs" / "HEAD"


def reflog_marker(project_root: Path) -> Path:
    """Location of the HEAD reflog that signals commits and checkouts."""
    return project_root / REFLOG_MARKER


class GitOps:
    """Owns a pygit2.Repository and answers HEAD and diff questions."""

    def __init__(self, repo_path: Path | str) -> None:
        self._path = Path(repo_path)
        try:
            self._repo = pygit2.Repository(str(self._path))
        except pygit2.GitError as e:
            raise NotARepositoryError(str(self._path)) from e

    @property
    def path(self) -> Path:
        return Path(self._repo.workdir) if self._repo.workdir else self._path

    def head_sha(self) -> str | None:
        """Commit id HEAD points at, or None on an unborn branch."""
        if self._repo.head_is_unborn:
            return None
        return str(self._repo.head.peel(pygit2.Commit).id)

    def resolve_commit(self, sha: str) -> pygit2.Commit:
        try:
            obj = self._repo.revparse_single(sha)
        except (KeyError, ValueError, pygit2.GitError) as e:
            raise RefNotFoundError(sha) from e
        if isinstance(obj, pygit2.Tag):
            obj = obj.peel(pygit2.Commit)
        if not isinstance(obj, pygit2.Commit):
            raise RefNotFoundError(f"{sha} is not a commit")
        return obj

    def get_empty_tree(self) -> pygit2.Tree:
        builder = self._repo.TreeBuilder()
        return self._repo.get(builder.write())  # type: ignore[return-value]

    def changed_files(self, base_sha: str | None, target_sha: str) -> list[DiffFile]:
        """Files that differ between two commits.

        A base of None diffs against the empty tree, so every file in the
        target commit reports as added.

        Raises:
            RefNotFoundError: Either commit is unknown.
        """
        target_tree = self.resolve_commit(target_sha).tree
        base_tree = (
            self.resolve_commit(base_sha).tree if base_sha is not None else self.get_empty_tree()
        )
        try:
            diff = base_tree.diff_to_tree(target_tree)
            diff.find_similar()
        except pygit2.GitError as e:
            raise DiffError(base_sha, target_sha, str(e)) from e

        return [
            DiffFile(
                old_path=delta.old_file.path if delta.old_file else None,
                new_path=delta.new_file.path if delta.new_file else None,
                status=delta_status(delta.status),
            )
            for delta in diff.deltas
        ]

    def changed_paths(self, base_sha: str | None, target_sha: str) -> list[str]:
        """Sorted, de-duplicated paths touched between two commits."""
        paths: set[str] = set()
        for diff_file in self.changed_files(base_sha, target_sha):
            paths.update(diff_file.paths)
        return sorted(paths)
