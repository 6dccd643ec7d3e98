"""Persisted state: content fingerprints and deferred work."""

from indexsync.storage.fingerprints import FingerprintRecord, FingerprintStore, hash_file
from indexsync.storage.pending import PendingFileStore

__all__ = [
    "FingerprintRecord",
    "FingerprintStore",
    "PendingFileStore",
    "hash_file",
]
