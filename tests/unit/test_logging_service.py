"""Tests for logging service configuration."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import patch

from utility_settlement.config import settings
from utility_settlement.services.logging import get_log_level, setup_server_logging


class TestServerLogging:
    """Test server logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level

    def teardown_method(self):
        """Restore original handlers after each test."""
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)

    def test_setup_server_logging_creates_log_directory(self) -> None:
        """Verify setup_server_logging creates logs directory if missing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "test_logs" / "server.log"

            assert not log_file.parent.exists()
            setup_server_logging(str(log_file))

            assert log_file.parent.exists()

    def test_setup_server_logging_creates_handlers(self) -> None:
        """Verify setup_server_logging creates both stdout and file handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_server_logging(str(Path(temp_dir) / "server.log"))

            assert len(self.root_logger.handlers) == 2

    def test_level_from_settings(self) -> None:
        """Verify the configured level applies to the root logger and its handlers."""
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.object(settings, "log_level", "WARNING"):
                setup_server_logging(str(Path(temp_dir) / "server.log"))

            assert self.root_logger.level == logging.WARNING
            for handler in self.root_logger.handlers:
                assert handler.level == logging.WARNING

    def test_explicit_level_overrides_settings(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with patch.object(settings, "log_level", "WARNING"):
                setup_server_logging(str(Path(temp_dir) / "server.log"), level="debug")

            assert self.root_logger.level == logging.DEBUG

    def test_log_file_from_settings(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "configured" / "app.log"
            with patch.object(settings, "log_file", str(log_file)):
                setup_server_logging()

            assert log_file.parent.exists()

    def test_setup_server_logging_writes_formatted_lines(self) -> None:
        """Verify file output carries timestamp, logger name and level."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "server.log"
            setup_server_logging(str(log_file), level="INFO")

            logging.getLogger("utility_settlement.test").warning("Settlement finalized")

            log_contents = log_file.read_text()
            assert "Settlement finalized" in log_contents
            assert "utility_settlement.test" in log_contents
            assert "WARNING" in log_contents
            assert "[20" in log_contents

    def test_setup_server_logging_removes_existing_handlers(self) -> None:
        """Verify setup_server_logging clears existing handlers to avoid duplicates."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "server.log"
            dummy_handler = logging.StreamHandler()
            self.root_logger.addHandler(dummy_handler)

            setup_server_logging(str(log_file))
            setup_server_logging(str(log_file))

            assert len(self.root_logger.handlers) == 2
            assert dummy_handler not in self.root_logger.handlers


class TestGetLogLevel:
    def test_unknown_level_falls_back_to_info(self):
        assert get_log_level("LOUD") == logging.INFO

    def test_settings_level_used_when_unset(self):
        with patch.object(settings, "log_level", "ERROR"):
            assert get_log_level() == logging.ERROR

    def test_environment_is_not_consulted(self):
        with patch.dict("os.environ", {"LOG_LEVEL": "DEBUG"}), patch.object(settings, "log_level", "ERROR"):
            assert get_log_level() == logging.ERROR
