"""Tests for strategies/lazy.py."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FakeIndex, idle_watcher, wait_until, write_file

from indexsync.storage.pending import PENDING_FILE, PendingFileStore
from indexsync.strategies.base import StrategyContext
from indexsync.strategies.lazy import LazyStrategy


async def _started(context: StrategyContext) -> LazyStrategy:
    with patch.object(LazyStrategy, "_build_watcher", return_value=idle_watcher()):
        strategy = LazyStrategy(context)
        await strategy.start()
    return strategy


class TestDeferredProcessing:
    @pytest.mark.asyncio
    async def test_given_changes_when_notified_then_only_queued(
        self,
        project: Path,
        make_context: Callable[..., StrategyContext],
        fake_index: FakeIndex,
    ) -> None:
        """Nothing reaches the index until a flush."""
        # Given
        strategy = await _started(make_context())
        write_file(project, "a.py")
        write_file(project, "b.py")

        # When
        strategy.notify(["a.py", "b.py", "a.py"])

        # Then
        try:
            assert strategy.pending_files == 2
            assert strategy.processed_files == 0
            assert fake_index.updated == []
        finally:
            await strategy.stop()

    @pytest.mark.asyncio
    async def test_given_queued_changes_when_flushed_then_processed(
        self,
        project: Path,
        make_context: Callable[..., StrategyContext],
        fake_index: FakeIndex,
    ) -> None:
        strategy = await _started(make_context())
        write_file(project, "a.py")
        write_file(project, "b.py")
        strategy.notify(["a.py", "b.py"])

        await strategy.flush()

        assert fake_index.updated == ["a.py", "b.py"]
        assert strategy.pending_files == 0
        assert strategy.processed_files == 2
        await strategy.stop()

    @pytest.mark.asyncio
    async def test_given_queued_changes_when_stopped_then_flushed_first(
        self,
        project: Path,
        make_context: Callable[..., StrategyContext],
        fake_index: FakeIndex,
    ) -> None:
        strategy = await _started(make_context())
        write_file(project, "a.py")
        strategy.notify(["a.py"])

        await strategy.stop()

        assert fake_index.updated == ["a.py"]
        assert not strategy.is_active

    @pytest.mark.asyncio
    async def test_given_idle_threshold_when_quiet_then_flushes_itself(
        self,
        project: Path,
        make_context: Callable[..., StrategyContext],
        fake_index: FakeIndex,
    ) -> None:
        strategy = await _started(make_context(lazy_idle_threshold_sec=0.05))
        write_file(project, "a.py")

        strategy.notify(["a.py"])

        try:
            assert await wait_until(lambda: fake_index.updated == ["a.py"])
            assert strategy.pending_files == 0
        finally:
            await strategy.stop()

    @pytest.mark.asyncio
    async def test_given_new_change_when_idle_timer_armed_then_timer_restarts(
        self,
        project: Path,
        make_context: Callable[..., StrategyContext],
        fake_index: FakeIndex,
    ) -> None:
        """Activity keeps postponing the idle flush."""
        strategy = await _started(make_context(lazy_idle_threshold_sec=60))
        write_file(project, "a.py")
        strategy.notify(["a.py"])
        first_timer = strategy._idle_task

        strategy.notify(["a.py"])

        try:
            assert first_timer is not None
            assert strategy._idle_task is not first_timer
            assert fake_index.updated == []
        finally:
            await strategy.stop()


class TestPendingPersistence:
    @pytest.mark.asyncio
    async def test_given_notify_when_queued_then_persisted(
        self,
        project: Path,
        index_path: Path,
        make_context: Callable[..., StrategyContext],
    ) -> None:
        strategy = await _started(make_context())

        strategy.notify(["src/a.py"])

        store = PendingFileStore.for_index(index_path)
        store.load()
        assert store.paths() == ["src/a.py"]
        await strategy.stop()

    @pytest.mark.asyncio
    async def test_given_pending_file_when_started_then_restored(
        self,
        project: Path,
        index_path: Path,
        make_context: Callable[..., StrategyContext],
        fake_index: FakeIndex,
    ) -> None:
        """Work queued before a restart is picked up again."""
        # Given
        write_file(project, "a.py")
        (index_path / PENDING_FILE).write_text(json.dumps({"version": "1.0.0", "paths": ["a.py"]}))

        # When
        strategy = await _started(make_context())

        # Then
        assert strategy.pending_files == 1
        await strategy.flush()
        assert fake_index.updated == ["a.py"]
        await strategy.stop()

    @pytest.mark.asyncio
    async def test_given_flush_when_complete_then_persisted_queue_empty(
        self,
        project: Path,
        index_path: Path,
        make_context: Callable[..., StrategyContext],
    ) -> None:
        strategy = await _started(make_context())
        write_file(project, "a.py")
        strategy.notify(["a.py"])

        await strategy.flush()

        store = PendingFileStore.for_index(index_path)
        store.load()
        assert store.paths() == []
        await strategy.stop()

    @pytest.mark.asyncio
    async def test_given_corrupt_pending_file_when_started_then_discarded(
        self,
        index_path: Path,
        make_context: Callable[..., StrategyContext],
    ) -> None:
        (index_path / PENDING_FILE).write_text("{garbage")

        strategy = await _started(make_context())

        assert strategy.is_active
        assert strategy.pending_files == 0
        await strategy.stop()
