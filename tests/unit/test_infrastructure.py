# tests/unit/test_infrastructure.py
# Unit tests for infrastructure components: errors, logging, config

import logging

import pytest


class TestErrors:
    """Test the structured error hierarchy."""

    def test_app_error_has_correct_properties(self):
        from datagrid.exceptions import AppError

        error = AppError("Test message", error_code="TEST_CODE", details={"key": "value"})
        assert error.message == "Test message"
        assert error.error_code == "TEST_CODE"
        assert error.details == {"key": "value"}
        assert str(error) == "Test message"

    def test_storage_error_defaults(self):
        from datagrid.exceptions import StorageError

        error = StorageError()
        assert error.error_code == "STORAGE_ERROR"
        assert error.details == {}

    def test_unavailable_is_a_storage_error(self):
        from datagrid.exceptions import StorageError, StorageUnavailableError

        error = StorageUnavailableError(details={"reason": "x"})
        assert isinstance(error, StorageError)
        assert error.error_code == "STORAGE_UNAVAILABLE"

    def test_column_definition_error(self):
        from datagrid.exceptions import ColumnDefinitionError

        assert ColumnDefinitionError().error_code == "INVALID_COLUMN"


class TestLogger:
    """Test logging helpers."""

    def test_log_exception_includes_context_and_traceback(self, caplog):
        from datagrid.utils.logger import log_exception

        try:
            raise ValueError("bad value")
        except ValueError as e:
            with caplog.at_level(logging.ERROR, logger="datagrid.error"):
                log_exception(e, "StorageService: save failed")

        text = caplog.text
        assert "StorageService: save failed" in text
        assert "ValueError: bad value" in text
        assert "Traceback" in text

    def test_log_warning(self, caplog):
        from datagrid.utils.logger import log_warning

        with caplog.at_level(logging.WARNING, logger="datagrid.error"):
            log_warning("careful")
        assert "careful" in caplog.text

    def test_log_info(self, caplog):
        from datagrid.utils.logger import log_info

        with caplog.at_level(logging.INFO, logger="datagrid.access"):
            log_info("hello")
        assert "hello" in caplog.text


class TestConfig:
    """Test settings parsing."""

    def test_defaults(self, monkeypatch):
        from datagrid.config import Settings

        for name in ("DB_URL", "REDIS_URL", "SAVE_DEBOUNCE_MS", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(_env_file=None)
        assert settings.SAVE_DEBOUNCE_MS == 100
        assert settings.SETTLE_DELAY_MS == 100
        assert settings.DEFAULT_PAGE_SIZE == 10
        assert settings.STORAGE_NAMESPACE == "datagrid"

    def test_env_override(self, monkeypatch):
        from datagrid.config import Settings

        monkeypatch.setenv("SAVE_DEBOUNCE_MS", "250")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = Settings(_env_file=None)
        assert settings.SAVE_DEBOUNCE_MS == 250
        assert settings.LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self, monkeypatch):
        from datagrid.config import Settings

        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        with pytest.raises(ValueError):
            Settings(_env_file=None)


class TestJsonLogging:
    """Test structured logging setup."""

    def test_console_handler_added_once(self, monkeypatch):
        import sys
        from types import SimpleNamespace

        from pythonjsonlogger import jsonlogger

        from datagrid.observability.logger import configure_logging

        root = logging.getLogger()
        monkeypatch.setattr(root, "handlers", [])
        level = root.level
        try:
            cfg = SimpleNamespace(LOG_LEVEL="INFO", LOG_DIR=None)
            configure_logging(cfg)
            configure_logging(cfg)
            console = [h for h in root.handlers if getattr(h, "stream", None) is sys.stdout]
            assert len(console) == 1
            assert isinstance(console[0].formatter, jsonlogger.JsonFormatter)
        finally:
            root.setLevel(level)
