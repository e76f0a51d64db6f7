"""Unit tests for deltasync logging configuration."""

from __future__ import annotations

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from unittest import mock

import deltasync
from deltasync import ClientUpdateRequest, MapState, SyncServer
from deltasync.logging_config import (
    LOGGER_NAME,
    JsonFormatter,
    _clear_handlers,
    _get_level,
    _get_logger,
)


class TestSilentByDefault:
    """The library is silent unless logging is enabled."""

    def test_import_produces_no_log_output(self, capfd):
        import importlib

        importlib.reload(deltasync)

        captured = capfd.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_logger_has_null_handler(self):
        logger = logging.getLogger(LOGGER_NAME)
        assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)

    def test_requests_produce_no_output(self, capfd):
        server = SyncServer(MapState({1: "A"}))
        server.get_client_diff(ClientUpdateRequest(id=1, current_hash=0))

        captured = capfd.readouterr()
        assert captured.err == ""


class TestEnableConsoleLogging:
    """Tests for enable_console_logging."""

    def test_sets_level(self):
        deltasync.enable_console_logging(level="DEBUG")
        assert _get_logger().level == logging.DEBUG

    def test_server_decisions_visible_at_debug(self, capfd):
        deltasync.enable_console_logging(level="DEBUG")

        server = SyncServer(MapState({1: "A"}), name="primary")
        server.get_client_diff(ClientUpdateRequest(id=1, current_hash=0))

        captured = capfd.readouterr()
        assert "[primary] New client 1" in captured.err
        assert "deltasync.server" in captured.err

    def test_custom_format(self, capfd):
        deltasync.enable_console_logging(level="INFO", format="[CUSTOM] %(message)s")

        logging.getLogger(f"{LOGGER_NAME}.test").info("hello")

        captured = capfd.readouterr()
        assert "[CUSTOM] hello" in captured.err


class TestEnableFileLogging:
    """Tests for enable_file_logging."""

    def test_creates_parent_directories(self, tmp_path):
        log_file = tmp_path / "subdir" / "nested" / "sync.log"
        deltasync.enable_file_logging(log_file)
        assert log_file.parent.exists()

    def test_writes_to_file(self, tmp_path):
        log_file = tmp_path / "sync.log"
        deltasync.enable_file_logging(log_file, level="INFO")

        logging.getLogger(f"{LOGGER_NAME}.test").info("file test message")
        for handler in _get_logger().handlers:
            handler.flush()

        assert "file test message" in log_file.read_text()

    def test_respects_max_bytes(self, tmp_path):
        handler = deltasync.enable_file_logging(tmp_path / "sync.log", max_bytes=1024, backup_count=3)
        assert handler.maxBytes == 1024
        assert handler.backupCount == 3


class TestJsonLogging:
    """Tests for the JSON helpers and formatter."""

    def test_outputs_valid_json(self, capfd):
        deltasync.enable_json_logging(level="INFO")

        logging.getLogger(f"{LOGGER_NAME}.test").info("json test")

        data = json.loads(capfd.readouterr().err.strip())
        assert data["message"] == "json test"
        assert data["level"] == "INFO"
        assert data["logger"] == f"{LOGGER_NAME}.test"
        assert "timestamp" in data

    def test_writes_json_to_file(self, tmp_path):
        log_file = tmp_path / "sync.json"
        deltasync.enable_json_file_logging(log_file, level="INFO")

        logging.getLogger(f"{LOGGER_NAME}.test").info("json file test")
        for handler in _get_logger().handlers:
            handler.flush()

        assert json.loads(log_file.read_text().strip())["message"] == "json file test"

    def test_formatter_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys

            exc_info = sys.exc_info()

        record = logging.LogRecord(
            name="test.logger",
            level=logging.ERROR,
            pathname="test.py",
            lineno=1,
            msg="error occurred",
            args=(),
            exc_info=exc_info,
        )
        data = json.loads(JsonFormatter().format(record))
        assert "RuntimeError" in data["exception"]


class TestConfigureFromEnv:
    """Tests for configure_from_env."""

    def test_respects_ds_logging(self):
        with mock.patch.dict(os.environ, {"DS_LOGGING": "DEBUG"}, clear=True):
            deltasync.configure_from_env()
        assert _get_logger().level == logging.DEBUG

    def test_respects_ds_log_file(self, tmp_path):
        env = {"DS_LOGGING": "INFO", "DS_LOG_FILE": str(tmp_path / "env.log")}
        with mock.patch.dict(os.environ, env, clear=True):
            deltasync.configure_from_env()

        assert any(isinstance(h, RotatingFileHandler) for h in _get_logger().handlers)

    def test_respects_ds_log_json(self, capfd):
        with mock.patch.dict(os.environ, {"DS_LOGGING": "INFO", "DS_LOG_JSON": "1"}, clear=True):
            deltasync.configure_from_env()

        logging.getLogger(f"{LOGGER_NAME}.test").info("json env test")

        data = json.loads(capfd.readouterr().err.strip())
        assert data["message"] == "json env test"

    def test_does_nothing_when_no_env_vars(self):
        initial_count = len(_get_logger().handlers)
        with mock.patch.dict(os.environ, {}, clear=True):
            deltasync.configure_from_env()
        assert len(_get_logger().handlers) == initial_count


class TestLevels:
    """Tests for set_level, set_module_level and disable_logging."""

    def test_set_level(self):
        deltasync.set_level("WARNING")
        assert _get_logger().level == logging.WARNING
        deltasync.set_level(logging.ERROR)
        assert _get_logger().level == logging.ERROR

    def test_set_module_level(self, capfd):
        deltasync.enable_console_logging(level="DEBUG")
        deltasync.set_module_level("server", "CRITICAL")

        server = SyncServer(MapState({1: "A"}))
        server.get_client_diff(ClientUpdateRequest(id=1, current_hash=0))
        logging.getLogger(f"{LOGGER_NAME}.client").debug("client debug")

        captured = capfd.readouterr()
        assert "New client" not in captured.err
        assert "client debug" in captured.err

        deltasync.set_module_level("server", logging.NOTSET)

    def test_disable_logging(self, capfd):
        deltasync.enable_console_logging(level="DEBUG")
        deltasync.disable_logging()

        logging.getLogger(f"{LOGGER_NAME}.test").critical("this should not appear")

        assert "this should not appear" not in capfd.readouterr().err
        non_null = [h for h in _get_logger().handlers if not isinstance(h, logging.NullHandler)]
        assert non_null == []


class TestHelperFunctions:
    """Tests for internal helpers."""

    def test_get_level(self):
        assert _get_level("DEBUG") == logging.DEBUG
        assert _get_level("info") == logging.INFO
        assert _get_level(logging.ERROR) == logging.ERROR
        assert _get_level("INVALID") == logging.INFO

    def test_clear_handlers_keeps_null_handler(self):
        deltasync.enable_console_logging()
        _clear_handlers()
        handlers = _get_logger().handlers
        assert handlers
        assert all(isinstance(h, logging.NullHandler) for h in handlers)
