"""
Tests for logging setup and configuration utilities.
"""

import logging
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from resumable_upload.infrastructure.config.models import LoggingConfig
from resumable_upload.infrastructure.logging.setup import (
    InterceptHandler, LoggingManager, setup_logging
)


class TestSetupLogging:
    """Test cases for setup_logging."""

    @patch('resumable_upload.infrastructure.logging.setup.loguru_logger')
    def test_console_and_file_sinks(self, mock_logger: Mock, tmp_path: Path) -> None:
        config = LoggingConfig(log_directory=str(tmp_path / "logs"), level="debug")

        setup_logging(config)

        mock_logger.remove.assert_called_once()
        assert mock_logger.add.call_count == 2
        file_call = mock_logger.add.call_args_list[1]
        assert file_call.args[0] == tmp_path / "logs" / "app.log"
        assert file_call.kwargs["level"] == "DEBUG"
        assert file_call.kwargs["rotation"] == "10MB"
        assert file_call.kwargs["retention"] == 5
        assert (tmp_path / "logs").is_dir()

    @patch('resumable_upload.infrastructure.logging.setup.loguru_logger')
    def test_sinks_can_be_disabled(self, mock_logger: Mock, tmp_path: Path) -> None:
        config = LoggingConfig(
            log_directory=str(tmp_path / "logs"),
            console_enabled=False,
            file_enabled=False
        )

        setup_logging(config)

        mock_logger.add.assert_not_called()
        assert not (tmp_path / "logs").exists()

    @patch('resumable_upload.infrastructure.logging.setup.loguru_logger')
    def test_standard_logging_intercepted(self, mock_logger: Mock) -> None:
        setup_logging(LoggingConfig(console_enabled=False, file_enabled=False))

        root_handlers = logging.getLogger().handlers
        assert len(root_handlers) == 1
        assert isinstance(root_handlers[0], InterceptHandler)

        uvicorn_logger = logging.getLogger("uvicorn.access")
        assert isinstance(uvicorn_logger.handlers[0], InterceptHandler)
        assert uvicorn_logger.propagate is False


class TestInterceptHandler:
    """Test cases for InterceptHandler."""

    @patch('resumable_upload.infrastructure.logging.setup.loguru_logger')
    def test_emit_forwards_record(self, mock_logger: Mock) -> None:
        mock_logger.level.return_value.name = "WARNING"
        record = logging.LogRecord("test", logging.WARNING, __file__, 1, "hello %s", ("world",), None)

        InterceptHandler().emit(record)

        mock_logger.opt.return_value.log.assert_called_once_with("WARNING", "hello world")

    @patch('resumable_upload.infrastructure.logging.setup.loguru_logger')
    def test_emit_unknown_level_uses_number(self, mock_logger: Mock) -> None:
        mock_logger.level.side_effect = ValueError("unknown level")
        record = logging.LogRecord("test", 25, __file__, 1, "custom", None, None)
        record.levelname = "CUSTOM"

        InterceptHandler().emit(record)

        mock_logger.opt.return_value.log.assert_called_once_with(25, "custom")


class TestLoggingManager:
    """Test cases for LoggingManager."""

    @pytest.fixture
    def config(self, tmp_path: Path) -> LoggingConfig:
        return LoggingConfig(log_directory=str(tmp_path), console_enabled=False, file_enabled=False)

    def test_properties(self, config: LoggingConfig) -> None:
        manager = LoggingManager(config)

        assert manager.name == "LoggingManager"
        assert manager.config is config
        assert LoggingManager().config == LoggingConfig()

    @pytest.mark.asyncio
    @patch('resumable_upload.infrastructure.logging.setup.setup_logging')
    async def test_start_applies_configuration_once(self, mock_setup: Mock, config: LoggingConfig) -> None:
        manager = LoggingManager(config)

        await manager.start()
        await manager.start()

        mock_setup.assert_called_once_with(config)
        assert (await manager.check_health())["status"] == "running"

    @pytest.mark.asyncio
    async def test_stop(self, config: LoggingConfig) -> None:
        manager = LoggingManager(config)
        await manager.start()

        await manager.stop()

        health = await manager.check_health()
        assert health["status"] == "stopped"
        assert health["details"]["log_directory_exists"] is True

    @pytest.mark.asyncio
    @patch('resumable_upload.infrastructure.logging.setup.setup_logging')
    async def test_configure_reapplies_when_started(self, mock_setup: Mock, config: LoggingConfig) -> None:
        manager = LoggingManager(config)
        await manager.configure({"level": "WARNING", "console_enabled": False, "file_enabled": False})
        mock_setup.assert_not_called()

        await manager.start()
        await manager.configure({"level": "ERROR", "console_enabled": False, "file_enabled": False})

        assert manager.config.level == "ERROR"
        assert mock_setup.call_count == 2

    @patch('resumable_upload.infrastructure.logging.setup.loguru_logger')
    def test_helper_records(self, mock_logger: Mock, config: LoggingConfig) -> None:
        manager = LoggingManager(config)

        manager.log_access("GET /upload/x/status", status_code=200)
        manager.log_performance("PUT /upload/x", duration=0.5)
        manager.log_error("write failed", error=OSError("disk"), upload_id="x")

        mock_logger.bind.assert_any_call(access_log=True, status_code=200)
        mock_logger.bind.assert_any_call(performance_log=True, duration=0.5)
        mock_logger.bind.assert_any_call(upload_id="x")
