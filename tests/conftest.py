"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages,
and provides the shared project/index fixtures.
"""

import asyncio
import sys
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pygit2
import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local indexsync package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from indexsync.config.models import IndexingConfig, IntegrityConfig, TimeoutsConfig  # noqa: E402
from indexsync.index.routing import IndexRouter  # noqa: E402
from indexsync.integrity.engine import IntegrityEngine  # noqa: E402
from indexsync.policy.policy import PathPolicy  # noqa: E402
from indexsync.storage.fingerprints import FingerprintStore, hash_file  # noqa: E402
from indexsync.strategies.base import StrategyContext  # noqa: E402


class FakeIndex:
    """Index collaborator that records calls and can be told to fail per path."""

    def __init__(self, fail_on: Iterable[str] = ()) -> None:
        self.updated: list[str] = []
        self.removed: list[str] = []
        self.fail_on: set[str] = set(fail_on)
        self.closed = False

    async def update_file(self, rel_path: str) -> None:
        if rel_path in self.fail_on:
            raise RuntimeError(f"update rejected: {rel_path}")
        self.updated.append(rel_path)

    async def remove_file(self, rel_path: str) -> None:
        if rel_path in self.fail_on:
            raise RuntimeError(f"remove rejected: {rel_path}")
        self.removed.append(rel_path)

    async def get_stats(self) -> dict[str, Any]:
        return {"updated": len(self.updated), "removed": len(self.removed)}

    def is_loaded(self) -> bool:
        return True

    async def close(self) -> None:
        self.closed = True


def write_file(root: Path, rel_path: str, content: str = "content\n") -> Path:
    """Create a file (and its parents) under root."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


async def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Poll predicate on the running loop until it holds or timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.02)
    return predicate()


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Empty project directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def index_path(project: Path) -> Path:
    path = project / ".indexsync"
    path.mkdir()
    return path


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex()


@pytest.fixture
def fingerprints(index_path: Path) -> FingerprintStore:
    store = FingerprintStore.for_index(index_path)
    store.load()
    return store


@pytest.fixture
def policy(project: Path) -> PathPolicy:
    return PathPolicy(project)


@pytest.fixture
def router(fake_index: FakeIndex, fingerprints: FingerprintStore) -> IndexRouter:
    return IndexRouter(fake_index, fingerprints)


@pytest.fixture
def integrity(project: Path, router: IndexRouter, policy: PathPolicy) -> IntegrityEngine:
    return IntegrityEngine(project, router, policy, IntegrityConfig())


@pytest.fixture
def make_context(
    project: Path,
    index_path: Path,
    router: IndexRouter,
    integrity: IntegrityEngine,
    policy: PathPolicy,
) -> Callable[..., StrategyContext]:
    """Build a StrategyContext with fast trigger timings."""

    def _make(**indexing: Any) -> StrategyContext:
        settings: dict[str, Any] = {
            "debounce_sec": 0.05,
            "max_debounce_wait_sec": 0.2,
            "git_debounce_sec": 0.05,
            "lazy_idle_threshold_sec": 0,
        }
        settings.update(indexing)
        return StrategyContext(
            project_path=project,
            index_path=index_path,
            router=router,
            integrity=integrity,
            policy=policy,
            config=IndexingConfig(**settings),
            timeouts=TimeoutsConfig(watcher_stop_sec=1.0),
        )

    return _make


def track(store: FingerprintStore, root: Path, rel_path: str) -> str:
    """Record the current on-disk hash of rel_path in store."""
    content_hash = hash_file(root / rel_path)
    store.set(rel_path, content_hash)
    return content_hash


def commit_files(
    repo: pygit2.Repository,
    files: dict[str, str | None],
    message: str = "update",
) -> str:
    """Write (or delete, for None) files in the work tree and commit them."""
    workdir = Path(repo.workdir)
    for rel_path, content in files.items():
        if content is None:
            (workdir / rel_path).unlink()
            repo.index.remove(rel_path)
        else:
            write_file(workdir, rel_path, content)
            repo.index.add(rel_path)
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    parents = [] if repo.head_is_unborn else [repo.head.target]
    oid = repo.create_commit("HEAD", sig, sig, message, tree, parents)
    return str(oid)


@pytest.fixture
def git_repo(project: Path) -> pygit2.Repository:
    """Repository at the project root with one commit and a HEAD reflog."""
    repo = pygit2.init_repository(str(project), initial_head="main")
    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"
    commit_files(repo, {"src/a.py": "a = 1\n"}, "Initial commit")

    reflog = project / ".git" / "logs" / "HEAD"
    if not reflog.exists():
        reflog.parent.mkdir(parents=True, exist_ok=True)
        reflog.write_text("")
    return repo


def idle_watcher() -> MagicMock:
    """Stand-in FileWatcher that never reports changes."""
    watcher = MagicMock()
    watcher.start = AsyncMock()
    watcher.stop = AsyncMock()
    return watcher
