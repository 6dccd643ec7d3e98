"""Canonical exclude patterns with tiered architecture.

Tier 0 (HARDCODED_DIRS): Never traversed, not user-configurable.
    - VCS internals, IndexSync data directories

Tier 1 (DEFAULT_PRUNABLE_DIRS): Excluded by default, user can override with !pattern.
    - Dependencies, caches, build outputs
    - Users can opt-in by adding "!dirname" to .idxignore

DENY_FILE_PATTERNS: file globs that are never indexed (secrets, logs, lock files).
"""

from __future__ import annotations

# =============================================================================
# Tier 0: HARDCODED - Never traverse, not user-configurable
# =============================================================================

HARDCODED_DIRS: frozenset[str] = frozenset(
    (
        # VCS internals
        ".git",
        ".svn",
        ".hg",
        ".bzr",
        # IndexSync data
        ".indexsync",
    )
)

# =============================================================================
# Tier 1: DEFAULT_PRUNABLE - Excluded by default, user can override
# =============================================================================

DEFAULT_PRUNABLE_DIRS: frozenset[str] = frozenset(
    (
        # JavaScript/Node.js
        "node_modules",
        "jspm_packages",
        "bower_components",
        ".next",
        ".nuxt",
        ".turbo",
        # Python
        "venv",
        ".venv",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        ".ruff_cache",
        ".tox",
        ".nox",
        "site-packages",
        # Rust / JVM
        "target",
        ".gradle",
        # Generic build/output directories
        "dist",
        "build",
        "out",
        "coverage",
        ".nyc_output",
        # IDE/Editor directories
        ".idea",
        ".vscode",
        # Misc caches
        ".cache",
        "vendor",
    )
)

PRUNABLE_DIRS: frozenset[str] = HARDCODED_DIRS | DEFAULT_PRUNABLE_DIRS

# =============================================================================
# File deny list - matched against the file name, not overridable
# =============================================================================

DENY_FILE_PATTERNS: tuple[str, ...] = (
    # Secrets
    ".env",
    ".env.*",
    "*.pem",
    "*.key",
    "*.p12",
    "*.pfx",
    # Logs and lock files
    "*.log",
    "*.lock",
    "package-lock.json",
    "pnpm-lock.yaml",
    # Editor droppings
    ".DS_Store",
    "*.swp",
    "*.swo",
)

# Extensions that are binary without needing to sniff content
BINARY_EXTENSIONS: frozenset[str] = frozenset(
    (
        ".png",
        ".jpg",
        ".jpeg",
        ".gif",
        ".ico",
        ".pdf",
        ".zip",
        ".gz",
        ".tar",
        ".jar",
        ".class",
        ".so",
        ".dylib",
        ".dll",
        ".exe",
        ".o",
        ".a",
        ".pyc",
        ".wasm",
        ".mp3",
        ".mp4",
        ".woff",
        ".woff2",
        ".ttf",
    )
)


def is_hardcoded_dir(dirname: str) -> bool:
    """Check if directory is hardcoded (never traversable, not overridable)."""
    return dirname in HARDCODED_DIRS


def is_default_prunable(dirname: str) -> bool:
    """Check if directory is prunable by default (but user can override)."""
    return dirname in DEFAULT_PRUNABLE_DIRS
