"""Tests for logging service configuration."""

import logging

import pytest

from messledger.services.logging import get_log_level, setup_server_logging

pytestmark = pytest.mark.unit


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

    def test_creates_log_directory(self, tmp_path):
        log_file = tmp_path / "nested" / "server.log"

        setup_server_logging(str(log_file))

        assert log_file.parent.exists()

    def test_creates_stdout_and_file_handlers(self, tmp_path):
        setup_server_logging(str(tmp_path / "server.log"))

        handler_types = {type(h) for h in self.root_logger.handlers}
        assert logging.FileHandler in handler_types
        assert logging.StreamHandler in handler_types
        assert len(self.root_logger.handlers) == 2

    def test_writes_to_file(self, tmp_path):
        log_file = tmp_path / "server.log"
        setup_server_logging(str(log_file), "INFO")

        logging.getLogger("messledger.test").info("bulk entry posted")
        for handler in self.root_logger.handlers:
            handler.flush()

        assert "messledger.test - INFO - bulk entry posted" in log_file.read_text()

    def test_explicit_level(self, tmp_path):
        setup_server_logging(str(tmp_path / "server.log"), "WARNING")

        assert self.root_logger.level == logging.WARNING

    def test_sqlalchemy_engine_is_quiet(self, tmp_path):
        setup_server_logging(str(tmp_path / "server.log"), "DEBUG")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


class TestGetLogLevel:
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert get_log_level() == logging.DEBUG

    def test_unknown_falls_back_to_info(self):
        assert get_log_level("VERBOSE") == logging.INFO

    def test_default_is_info(self):
        assert get_log_level() == logging.INFO
