"""Indexing eligibility decisions.

Every component that touches a file asks the policy first. Rules run in
order and the first match wins:

1. Hardcoded directories (VCS, .indexsync)  -> skip
2. Deny-listed file names (secrets, logs)   -> skip
3. Excluded suffixes from config            -> skip
4. .idxignore / .gitignore / extra patterns -> skip
5. Binary extension                         -> skip
6. Larger than max_file_size_mb             -> skip
7. NUL byte in the first bytes              -> skip
8. Otherwise                                -> index
"""

from __future__ import annotations

import fnmatch
import unicodedata
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import structlog

from indexsync.config.models import PolicyConfig
from indexsync.core.excludes import BINARY_EXTENSIONS, DENY_FILE_PATTERNS, is_hardcoded_dir
from indexsync.policy.ignore import IgnoreChecker

logger = structlog.get_logger()

# Zero-width and bidi override characters stripped before matching
_INVISIBLE = dict.fromkeys(map(ord, "\u200b\u200c\u200d\ufeff\u202a\u202b\u202c\u202d\u202e"))


@dataclass(frozen=True, slots=True)
class PolicyDecision:
    """Outcome of an eligibility check."""

    should_index: bool
    reason: str | None = None

    @classmethod
    def accept(cls) -> PolicyDecision:
        return cls(True)

    @classmethod
    def reject(cls, reason: str) -> PolicyDecision:
        return cls(False, reason)


class IndexingPolicy(ABC):
    """Decides whether a project-relative path belongs in the index.

    Implementations must be deterministic and free of side effects.
    """

    @abstractmethod
    def should_index(self, rel_path: str) -> PolicyDecision: ...

    def should_prune_dir(self, dirname: str) -> bool:
        """Whether a directory walk may skip this directory entirely."""
        return is_hardcoded_dir(dirname)


def normalize_rel_path(rel_path: str) -> str:
    """NFC-normalize, drop invisible characters and use forward slashes."""
    cleaned = unicodedata.normalize("NFC", rel_path).translate(_INVISIBLE)
    return cleaned.replace("\\", "/")


class PathPolicy(IndexingPolicy):
    """Default policy built from PolicyConfig and the project's ignore files."""

    def __init__(self, project_root: Path, config: PolicyConfig | None = None) -> None:
        self._root = project_root
        self._config = config or PolicyConfig()
        self._max_bytes = int(self._config.max_file_size_mb * 1024 * 1024)
        self._ignore = IgnoreChecker(
            project_root,
            extra_patterns=self._config.extra_ignore_patterns,
            respect_gitignore=self._config.respect_gitignore,
        )

    def reload(self) -> None:
        """Re-read ignore files after one of them changed."""
        self._ignore = IgnoreChecker(
            self._root,
            extra_patterns=self._config.extra_ignore_patterns,
            respect_gitignore=self._config.respect_gitignore,
        )
        logger.info("ignore_rules_reloaded", files=len(self._ignore.ignore_files))

    @property
    def ignore_checker(self) -> IgnoreChecker:
        return self._ignore

    def should_prune_dir(self, dirname: str) -> bool:
        return self._ignore.should_prune_dir(dirname)

    def should_index(self, rel_path: str) -> PolicyDecision:
        rel = normalize_rel_path(rel_path)
        path = PurePosixPath(rel)
        name = path.name

        if any(is_hardcoded_dir(part) for part in path.parts[:-1]):
            return PolicyDecision.reject("inside a version-control or data directory")

        for pattern in DENY_FILE_PATTERNS:
            if fnmatch.fnmatchcase(name, pattern):
                return PolicyDecision.reject(f"deny-listed file ({pattern})")

        lower = name.lower()
        for suffix in self._config.excluded_extensions:
            if lower.endswith(suffix.lower()):
                return PolicyDecision.reject(f"excluded extension ({suffix})")

        if self._ignore.is_excluded_rel(rel):
            return PolicyDecision.reject("matched an ignore pattern")

        if path.suffix.lower() in BINARY_EXTENSIONS:
            return PolicyDecision.reject("binary file extension")

        full = self._root / rel
        try:
            size = full.stat().st_size
        except OSError:
            # Not on disk: only name-based rules apply
            return PolicyDecision.accept()

        if size > self._max_bytes:
            return PolicyDecision.reject(
                f"file too large ({size} bytes > {self._max_bytes} bytes)"
            )
        if self._looks_binary(full):
            return PolicyDecision.reject("binary content")
        return PolicyDecision.accept()

    def _looks_binary(self, path: Path) -> bool:
        try:
            with path.open("rb") as f:
                head = f.read(self._config.binary_sniff_bytes)
        except OSError:
            return False
        return b"\x00" in head
