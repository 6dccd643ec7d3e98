"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import structlog

from indexsync.config.models import LoggingConfig, LogOutputConfig
from indexsync.core.logging import (
    configure_logging,
    get_active_strategy,
    get_log_file_path,
    get_logger,
    set_active_strategy,
)


class TestActiveStrategyCorrelation:
    """Strategy context variable tests."""

    def setup_method(self) -> None:
        set_active_strategy(None)

    def test_given_name_when_set_then_can_retrieve(self) -> None:
        # Given / When
        set_active_strategy("lazy")

        # Then
        assert get_active_strategy() == "lazy"

    def test_given_fresh_context_when_get_then_returns_none(self) -> None:
        assert get_active_strategy() is None


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()
        set_active_strategy(None)

    def teardown_method(self) -> None:
        for handler in logging.getLogger().handlers:
            handler.close()
        logging.getLogger().handlers.clear()
        structlog.reset_defaults()
        set_active_strategy(None)

    def test_given_json_file_output_when_log_then_valid_json(self, tmp_path: Path) -> None:
        """JSON output carries event, level, timestamp and bound keys."""
        # Given
        log_file = tmp_path / "indexsync.log"
        configure_logging(
            config=LoggingConfig(
                level="INFO",
                outputs=[LogOutputConfig(format="json", destination=str(log_file))],
            )
        )

        # When
        get_logger("test").info("strategy_started", project="/p")

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["event"] == "strategy_started"
        assert data["project"] == "/p"
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_given_active_strategy_when_log_then_event_tagged(self, tmp_path: Path) -> None:
        """Events logged while a strategy is active carry its name."""
        # Given
        log_file = tmp_path / "tagged.log"
        configure_logging(
            config=LoggingConfig(outputs=[LogOutputConfig(format="json", destination=str(log_file))])
        )
        set_active_strategy("git")

        # When
        get_logger().info("paths_queued")

        # Then
        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["strategy"] == "git"

    def test_given_multi_output_config_when_configure_then_levels_per_output(
        self, tmp_path: Path
    ) -> None:
        """Each output filters at its own level."""
        # Given
        debug_file = tmp_path / "debug.log"
        info_file = tmp_path / "info.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(info_file), level="INFO"),
                LogOutputConfig(format="json", destination=str(debug_file)),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("debug only")
        logger.info("info msg")

        # Then
        info_content = info_file.read_text()
        assert "info msg" in info_content
        assert "debug only" not in info_content
        debug_content = debug_file.read_text()
        assert "debug only" in debug_content
        assert "info msg" in debug_content

    def test_given_file_output_when_configure_then_path_tracked(self, tmp_path: Path) -> None:
        log_file = tmp_path / "tracked.log"
        configure_logging(
            config=LoggingConfig(outputs=[LogOutputConfig(destination=str(log_file))])
        )
        assert get_log_file_path() == log_file

    def test_given_console_only_when_configure_then_no_file_path(self) -> None:
        configure_logging(level="WARNING")
        assert get_log_file_path() is None
        assert logging.getLogger("watchfiles.main").level == logging.WARNING
