"""Route each path to the code index or the documentation index."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from indexsync.index.protocols import IndexMutator
from indexsync.storage.fingerprints import FingerprintStore

DOC_EXTENSIONS: frozenset[str] = frozenset({".md", ".txt"})


def is_doc_file(rel_path: str) -> bool:
    return PurePosixPath(rel_path).suffix.lower() in DOC_EXTENSIONS


@dataclass(frozen=True, slots=True)
class IndexTarget:
    """An index and the fingerprint store that mirrors it."""

    kind: str  # "code" or "docs"
    index: IndexMutator
    fingerprints: FingerprintStore


class IndexRouter:
    """Picks the target for a path.

    Documentation files go to the docs target only when both a docs index
    and a docs fingerprint store were supplied; otherwise everything goes to
    the code target.
    """

    def __init__(
        self,
        index: IndexMutator,
        fingerprints: FingerprintStore,
        docs_index: IndexMutator | None = None,
        docs_fingerprints: FingerprintStore | None = None,
    ) -> None:
        self._code = IndexTarget("code", index, fingerprints)
        self._docs: IndexTarget | None = None
        if docs_index is not None and docs_fingerprints is not None:
            self._docs = IndexTarget("docs", docs_index, docs_fingerprints)

    @property
    def code(self) -> IndexTarget:
        return self._code

    @property
    def docs(self) -> IndexTarget | None:
        return self._docs

    def targets(self) -> list[IndexTarget]:
        return [self._code] if self._docs is None else [self._code, self._docs]

    def target_for(self, rel_path: str) -> IndexTarget:
        if self._docs is not None and is_doc_file(rel_path):
            return self._docs
        return self._code

    def tracked_paths(self) -> dict[str, str]:
        """Recorded path -> hash across every target."""
        merged: dict[str, str] = {}
        for target in self.targets():
            for path, content_hash in target.fingerprints.get_all().items():
                if self.target_for(path) is target:
                    merged[path] = content_hash
        return merged

    def save_dirty(self) -> None:
        for target in self.targets():
            target.fingerprints.save_if_dirty()
