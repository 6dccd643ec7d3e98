"""Index-mutation contract and doc/code routing."""

from indexsync.index.protocols import IndexMutator
from indexsync.index.routing import DOC_EXTENSIONS, IndexRouter, IndexTarget, is_doc_file

__all__ = [
    "DOC_EXTENSIONS",
    "IndexMutator",
    "IndexRouter",
    "IndexTarget",
    "is_doc_file",
]
