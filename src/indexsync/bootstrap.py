"""Project bootstrap: build an orchestrator from configuration."""

from __future__ import annotations

from pathlib import Path

import structlog

from indexsync.config.loader import load_config, resolve_index_path
from indexsync.config.models import IndexSyncConfig
from indexsync.core.logging import configure_logging
from indexsync.index.protocols import IndexMutator
from indexsync.index.routing import IndexRouter
from indexsync.integrity.engine import IntegrityEngine
from indexsync.orchestrator import OrchestratorDependencies, StrategyOrchestrator
from indexsync.policy.policy import PathPolicy
from indexsync.storage.fingerprints import FingerprintStore

logger = structlog.get_logger()


async def open_orchestrator(
    project_path: Path,
    index: IndexMutator,
    *,
    docs_index: IndexMutator | None = None,
    config: IndexSyncConfig | None = None,
    configure_logs: bool = False,
) -> StrategyOrchestrator:
    """Open a project's index state and start the configured strategy.

    Args:
        project_path: Root of the watched working tree.
        index: Code index collaborator.
        docs_index: Optional documentation index collaborator.
        config: Resolved configuration. Loaded from the project when omitted.
        configure_logs: Install config.logging as the process-wide log setup.

    Returns:
        Orchestrator with the configured strategy running.

    Raises:
        ConfigurationError: Invalid configuration or unknown strategy.
        StorageError: A fingerprint store on disk is corrupt.
        PreconditionError: The configured strategy cannot run here.
    """
    project_path = project_path.resolve()
    config = config or load_config(project_path)
    if configure_logs:
        configure_logging(config=config.logging)

    index_path = resolve_index_path(project_path, config)
    index_path.mkdir(parents=True, exist_ok=True)

    fingerprints = FingerprintStore.for_index(index_path)
    fingerprints.load()
    docs_fingerprints: FingerprintStore | None = None
    if docs_index is not None:
        docs_fingerprints = FingerprintStore.for_index(index_path, docs=True)
        docs_fingerprints.load()

    policy = PathPolicy(project_path, config.policy)
    router = IndexRouter(
        index,
        fingerprints,
        docs_index=docs_index,
        docs_fingerprints=docs_fingerprints,
    )
    integrity = IntegrityEngine(project_path, router, policy, config.integrity)

    if config.integrity.startup_check:
        await integrity.run_startup_check()

    orchestrator = StrategyOrchestrator(
        OrchestratorDependencies(
            project_path=project_path,
            index_path=index_path,
            index=index,
            integrity=integrity,
            policy=policy,
            fingerprints=fingerprints,
            docs_index=docs_index,
            docs_fingerprints=docs_fingerprints,
            timeouts=config.timeouts,
        )
    )

    integrity.start_periodic_check()
    try:
        await orchestrator.set_strategy(config.indexing)
    except Exception:
        integrity.stop_periodic_check()
        raise

    logger.info(
        "project_opened",
        project=str(project_path),
        index_path=str(index_path),
        strategy=config.indexing.indexing_strategy,
    )
    return orchestrator
