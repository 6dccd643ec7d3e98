"""Ignore pattern matching with tiered directory pruning.

Tiers:
- HARDCODED_DIRS: Always excluded, cannot be overridden (VCS, .indexsync)
- DEFAULT_PRUNABLE_DIRS: Excluded by default, user can opt-in via !pattern
- .idxignore / .gitignore patterns: User-configurable file/directory patterns
"""

from __future__ import annotations

import fnmatch
from pathlib import Path, PurePosixPath

from indexsync.core.excludes import (
    DEFAULT_PRUNABLE_DIRS,
    PRUNABLE_DIRS,
    is_hardcoded_dir,
)

IGNORE_FILE_NAME = ".idxignore"


class IgnoreChecker:
    """Checks if project-relative paths should be ignored.

    Pattern syntax:
    - Standard glob patterns (fnmatch)
    - Directory patterns ending in / match contents
    - Negation with ! prefix (e.g., !vendor/ to opt-in the vendor directory)
    - Nested ignore files prefix their patterns with their directory
    """

    def __init__(
        self,
        root: Path,
        extra_patterns: list[str] | None = None,
        *,
        respect_gitignore: bool = True,
    ) -> None:
        self._root = root
        self._patterns: list[str] = []
        self._negated_dirs: set[str] = set()
        self._ignore_files: list[Path] = []
        self._load_recursive(root, IGNORE_FILE_NAME)
        if respect_gitignore:
            self._load_recursive(root, ".gitignore")
        if extra_patterns:
            self._patterns.extend(extra_patterns)

    @property
    def ignore_files(self) -> list[Path]:
        """All ignore files that contributed patterns."""
        return self._ignore_files.copy()

    def should_prune_dir(self, dirname: str) -> bool:
        """Check if a directory should be skipped during traversal.

        Args:
            dirname: Directory name (not path), e.g., "node_modules"
        """
        if is_hardcoded_dir(dirname):
            return True
        if dirname in DEFAULT_PRUNABLE_DIRS:
            return dirname not in self._negated_dirs
        return False

    def is_excluded_rel(self, rel_path: str) -> bool:
        """Check a POSIX-style project-relative path against all patterns.

        Later patterns win, so a negation after an exclusion re-includes.
        """
        rel_posix = rel_path.replace("\\", "/")
        path_obj = PurePosixPath(rel_posix)
        if any(self.should_prune_dir(part) for part in path_obj.parts[:-1]):
            return True

        candidates = [rel_posix] + [p.as_posix() for p in path_obj.parents if p != PurePosixPath(".")]
        excluded = False
        for pattern in self._patterns:
            negated = pattern.startswith("!")
            glob = pattern[1:] if negated else pattern
            if any(fnmatch.fnmatch(c, glob) for c in candidates):
                excluded = not negated
        return excluded

    def _load_recursive(self, root: Path, file_name: str) -> None:
        root_file = root / file_name
        if root_file.is_file():
            self._load_ignore_file(root_file)

        for dirpath, dirnames, filenames in root.walk():
            dirnames[:] = [d for d in dirnames if d not in PRUNABLE_DIRS]
            if dirpath == root:
                continue
            if file_name in filenames:
                rel_dir = dirpath.relative_to(root).as_posix()
                self._load_ignore_file(dirpath / file_name, prefix=rel_dir)

    def _load_ignore_file(self, path: Path, prefix: str = "") -> None:
        try:
            content = path.read_text()
        except OSError:
            return
        self._ignore_files.append(path)

        for raw in content.splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            is_negation = line.startswith("!")
            if is_negation:
                line = line[1:]

            # Root-level "!vendor/" opts a default-pruned directory back in
            if is_negation and not prefix:
                dir_name = line.rstrip("/")
                if dir_name and "/" not in dir_name and "*" not in dir_name:
                    self._negated_dirs.add(dir_name)

            anchored = line.startswith("/")
            line = line.lstrip("/")
            pattern = f"{line}**" if line.endswith("/") else line
            if prefix:
                pattern = f"{prefix}/{pattern}"
            elif not anchored and "/" not in line.rstrip("/"):
                # Unanchored name patterns match at any depth
                self._add(f"*/{pattern}", is_negation)

            self._add(pattern, is_negation)

    def _add(self, pattern: str, is_negation: bool) -> None:
        self._patterns.append(f"!{pattern}" if is_negation else pattern)
