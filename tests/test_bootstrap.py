"""Tests for bootstrap.py."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FakeIndex, idle_watcher, write_file

from indexsync.bootstrap import open_orchestrator
from indexsync.config import loader
from indexsync.config.models import (
    IndexingConfig,
    IndexSyncConfig,
    IntegrityConfig,
    LoggingConfig,
    LogOutputConfig,
)
from indexsync.core.errors import PreconditionError, StorageError
from indexsync.integrity.engine import IntegrityEngine
from indexsync.storage.fingerprints import DOCS_FINGERPRINTS_FILE, FINGERPRINTS_FILE
from indexsync.strategies import LazyStrategy, RealtimeStrategy


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setattr(loader, "GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml")
    monkeypatch.delenv("INDEXSYNC__INDEXING__INDEXING_STRATEGY", raising=False)
    with (
        patch.object(RealtimeStrategy, "_build_watcher", side_effect=lambda: idle_watcher()),
        patch.object(LazyStrategy, "_build_watcher", side_effect=lambda: idle_watcher()),
    ):
        yield


def _config(strategy: str = "realtime", **integrity: object) -> IndexSyncConfig:
    return IndexSyncConfig(
        indexing=IndexingConfig(indexing_strategy=strategy, lazy_idle_threshold_sec=0),
        integrity=IntegrityConfig(**integrity),
    )


class TestOpenOrchestrator:
    @pytest.mark.asyncio
    async def test_given_fresh_project_when_opened_then_strategy_running(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        # When
        orchestrator = await open_orchestrator(project, fake_index, config=_config())

        # Then
        try:
            assert orchestrator.is_active()
            assert orchestrator.get_stats().name == "realtime"
            assert orchestrator.get_index_path() == project.resolve() / ".indexsync"
            assert orchestrator.get_index_path().is_dir()
        finally:
            await orchestrator.shutdown()
        assert fake_index.closed

    @pytest.mark.asyncio
    async def test_given_repo_config_when_opened_without_config_then_loaded(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        write_file(project, ".indexsync/config.yaml", "indexing:\n  indexing_strategy: lazy\n")

        orchestrator = await open_orchestrator(project, fake_index)

        try:
            assert isinstance(orchestrator.get_current_strategy(), LazyStrategy)
        finally:
            await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_given_index_path_override_when_opened_then_used(
        self, project: Path, tmp_path: Path, fake_index: FakeIndex
    ) -> None:
        config = _config()
        config.index_path = str(tmp_path / "elsewhere")

        orchestrator = await open_orchestrator(project, fake_index, config=config)

        try:
            assert orchestrator.get_index_path() == tmp_path / "elsewhere"
        finally:
            await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_given_docs_index_when_opened_then_doc_changes_routed(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        docs = FakeIndex()
        write_file(project, "README.md", "# readme\n")
        write_file(project, "main.py", "x = 1\n")

        orchestrator = await open_orchestrator(
            project, fake_index, docs_index=docs, config=_config()
        )
        strategy = orchestrator.get_current_strategy()
        strategy.notify(["README.md", "main.py"])
        await orchestrator.shutdown()

        assert docs.updated == ["README.md"]
        assert fake_index.updated == ["main.py"]
        assert (orchestrator.get_index_path() / DOCS_FINGERPRINTS_FILE).exists()


class TestStartupAndScheduling:
    @pytest.mark.asyncio
    async def test_given_startup_check_enabled_when_opened_then_run(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        with patch.object(IntegrityEngine, "run_startup_check", autospec=True) as check:
            orchestrator = await open_orchestrator(project, fake_index, config=_config())

        try:
            check.assert_awaited_once()
        finally:
            await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_given_startup_check_disabled_when_opened_then_skipped(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        with patch.object(IntegrityEngine, "run_startup_check", autospec=True) as check:
            orchestrator = await open_orchestrator(
                project, fake_index, config=_config(startup_check=False)
            )

        try:
            check.assert_not_awaited()
        finally:
            await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_given_opened_when_shutdown_then_periodic_check_stopped(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        with patch.object(
            IntegrityEngine,
            "stop_periodic_check",
            autospec=True,
            side_effect=IntegrityEngine.stop_periodic_check,
        ) as stop:
            orchestrator = await open_orchestrator(project, fake_index, config=_config())
            stop.assert_not_called()

            await orchestrator.shutdown()

        stop.assert_called_once()


class TestLogging:
    @pytest.mark.asyncio
    async def test_given_configure_logs_when_opened_then_logging_config_applied(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        config = _config()
        config.logging = LoggingConfig(
            level="DEBUG", outputs=[LogOutputConfig(destination="stderr", format="json")]
        )

        with patch("indexsync.bootstrap.configure_logging") as configure:
            orchestrator = await open_orchestrator(
                project, fake_index, config=config, configure_logs=True
            )

        try:
            configure.assert_called_once_with(config=config.logging)
        finally:
            await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_given_default_when_opened_then_logging_untouched(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        with patch("indexsync.bootstrap.configure_logging") as configure:
            orchestrator = await open_orchestrator(project, fake_index, config=_config())

        try:
            configure.assert_not_called()
        finally:
            await orchestrator.shutdown()


class TestFailures:
    @pytest.mark.asyncio
    async def test_given_git_strategy_without_repository_when_opened_then_raises(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        """Periodic checks are not left running behind a failed open."""
        with (
            patch.object(
                IntegrityEngine,
                "stop_periodic_check",
                autospec=True,
                side_effect=IntegrityEngine.stop_periodic_check,
            ) as stop,
            pytest.raises(PreconditionError),
        ):
            await open_orchestrator(project, fake_index, config=_config("git"))

        stop.assert_called_once()

    @pytest.mark.asyncio
    async def test_given_corrupt_fingerprints_when_opened_then_storage_error(
        self, project: Path, fake_index: FakeIndex
    ) -> None:
        write_file(project, f".indexsync/{FINGERPRINTS_FILE}", "{not json")

        with pytest.raises(StorageError):
            await open_orchestrator(project, fake_index, config=_config())
