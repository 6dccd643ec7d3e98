"""Tests for index/routing.py and index/apply.py."""

from __future__ import annotations

from pathlib import Path

import pytest
from conftest import FakeIndex, write_file

from indexsync.core.errors import ErrorCode
from indexsync.index.apply import FileAction, index_file, unindex_file
from indexsync.index.protocols import IndexMutator
from indexsync.index.routing import IndexRouter, is_doc_file
from indexsync.storage.fingerprints import FingerprintStore, hash_file


@pytest.fixture
def docs_index() -> FakeIndex:
    return FakeIndex()


@pytest.fixture
def docs_fingerprints(index_path: Path) -> FingerprintStore:
    store = FingerprintStore.for_index(index_path, docs=True)
    store.load()
    return store


class TestIsDocFile:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [("README.md", True), ("docs/NOTES.TXT", True), ("src/a.py", False), ("md", False)],
    )
    def test_by_suffix(self, path: str, expected: bool) -> None:
        assert is_doc_file(path) is expected


class TestIndexRouter:
    def test_fake_index_satisfies_protocol(self, fake_index: FakeIndex) -> None:
        assert isinstance(fake_index, IndexMutator)

    def test_given_no_docs_index_when_routing_doc_then_code_target(
        self, fake_index: FakeIndex, fingerprints: FingerprintStore
    ) -> None:
        """Without a docs index everything goes to the code index."""
        router = IndexRouter(fake_index, fingerprints)

        assert router.target_for("README.md").kind == "code"
        assert router.targets() == [router.code]
        assert router.docs is None

    def test_given_docs_index_when_routing_then_split_by_suffix(
        self,
        fake_index: FakeIndex,
        fingerprints: FingerprintStore,
        docs_index: FakeIndex,
        docs_fingerprints: FingerprintStore,
    ) -> None:
        router = IndexRouter(fake_index, fingerprints, docs_index, docs_fingerprints)

        assert router.target_for("README.md").index is docs_index
        assert router.target_for("src/a.py").index is fake_index

    def test_given_docs_index_without_store_when_routing_then_code_target(
        self, fake_index: FakeIndex, fingerprints: FingerprintStore, docs_index: FakeIndex
    ) -> None:
        router = IndexRouter(fake_index, fingerprints, docs_index=docs_index)
        assert router.target_for("README.md").kind == "code"

    def test_tracked_paths_merges_targets(
        self,
        fake_index: FakeIndex,
        fingerprints: FingerprintStore,
        docs_index: FakeIndex,
        docs_fingerprints: FingerprintStore,
    ) -> None:
        # Given
        fingerprints.set("src/a.py", "h1")
        fingerprints.set("stale.md", "h-old")
        docs_fingerprints.set("README.md", "h2")
        router = IndexRouter(fake_index, fingerprints, docs_index, docs_fingerprints)

        # When
        tracked = router.tracked_paths()

        # Then
        assert tracked == {"src/a.py": "h1", "README.md": "h2"}

    def test_save_dirty_saves_each_store(
        self,
        fake_index: FakeIndex,
        fingerprints: FingerprintStore,
        docs_index: FakeIndex,
        docs_fingerprints: FingerprintStore,
    ) -> None:
        fingerprints.set("a.py", "h1")
        docs_fingerprints.set("b.md", "h2")
        router = IndexRouter(fake_index, fingerprints, docs_index, docs_fingerprints)

        router.save_dirty()

        assert fingerprints.store_path.exists()
        assert docs_fingerprints.store_path.exists()
        assert not fingerprints.has_unsaved_changes()


class TestIndexFile:
    @pytest.mark.asyncio
    async def test_given_new_file_when_indexed_then_fingerprint_recorded(
        self, project: Path, router: IndexRouter, fake_index: FakeIndex
    ) -> None:
        # Given
        path = write_file(project, "a.py", "x = 1\n")

        # When
        outcome = await index_file(router, project, "a.py")

        # Then
        assert outcome.action is FileAction.UPDATED
        assert fake_index.updated == ["a.py"]
        record = router.code.fingerprints.get_record("a.py")
        assert record is not None
        assert record.content_hash == hash_file(path)
        assert record.size == 6

    @pytest.mark.asyncio
    async def test_given_unchanged_file_when_skip_unchanged_then_no_update(
        self, project: Path, router: IndexRouter, fake_index: FakeIndex
    ) -> None:
        path = write_file(project, "a.py")
        router.code.fingerprints.set("a.py", hash_file(path))

        outcome = await index_file(router, project, "a.py", skip_unchanged=True)

        assert outcome.action is FileAction.UNCHANGED
        assert fake_index.updated == []

    @pytest.mark.asyncio
    async def test_given_collaborator_failure_when_indexed_then_failed_outcome(
        self, project: Path, router: IndexRouter, fake_index: FakeIndex
    ) -> None:
        """A failing update is reported, not raised, and the fingerprint is untouched."""
        write_file(project, "a.py")
        fake_index.fail_on.add("a.py")

        outcome = await index_file(router, project, "a.py")

        assert not outcome.ok
        assert outcome.error is not None
        assert outcome.error.code == ErrorCode.FILE_UPDATE_FAILED
        assert not router.code.fingerprints.has("a.py")

    @pytest.mark.asyncio
    async def test_given_missing_file_when_indexed_then_hash_failed(
        self, project: Path, router: IndexRouter
    ) -> None:
        outcome = await index_file(router, project, "ghost.py")

        assert outcome.action is FileAction.FAILED
        assert outcome.error is not None
        assert outcome.error.code == ErrorCode.FILE_HASH_FAILED
        assert outcome.path == "ghost.py"


class TestUnindexFile:
    @pytest.mark.asyncio
    async def test_given_tracked_file_when_unindexed_then_fingerprint_dropped(
        self, router: IndexRouter, fake_index: FakeIndex
    ) -> None:
        router.code.fingerprints.set("old.py", "h1")

        outcome = await unindex_file(router, "old.py")

        assert outcome.action is FileAction.REMOVED
        assert fake_index.removed == ["old.py"]
        assert not router.code.fingerprints.has("old.py")

    @pytest.mark.asyncio
    async def test_given_remove_failure_when_unindexed_then_fingerprint_kept(
        self, router: IndexRouter, fake_index: FakeIndex
    ) -> None:
        router.code.fingerprints.set("old.py", "h1")
        fake_index.fail_on.add("old.py")

        outcome = await unindex_file(router, "old.py")

        assert outcome.error is not None
        assert outcome.error.code == ErrorCode.FILE_REMOVE_FAILED
        assert router.code.fingerprints.has("old.py")
