"""Contract for the index that strategies and reconciliation write to.

The index implementation (chunking, embeddings, vector storage) lives outside
this package. It only has to provide the methods below.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IndexMutator(Protocol):
    """Write side of a code or documentation index.

    Paths are project-relative, POSIX-style.
    """

    async def update_file(self, rel_path: str) -> None:
        """(Re)index one file from its current content on disk."""
        ...

    async def remove_file(self, rel_path: str) -> None:
        """Drop every entry derived from one file."""
        ...

    async def get_stats(self) -> dict[str, Any]: ...

    def is_loaded(self) -> bool: ...

    async def close(self) -> None: ...
