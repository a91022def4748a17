"""Tests for logging configuration and the JSON formatter."""

import json
import logging
import sys
from pathlib import Path

import pytest

from mediabroker.config.models import LoggingConfig
from mediabroker.logging import JSONFormatter, configure_logging, download_context
from mediabroker.logging.context import DownloadContextFilter


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def _format(self, **extra) -> dict:
        record = logging.LogRecord(
            "mediabroker.test", logging.WARNING, __file__, 1, "hello %s", ("x",), None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return json.loads(JSONFormatter().format(record))

    def test_basic_fields(self) -> None:
        entry = self._format()
        assert entry["level"] == "WARNING"
        assert entry["message"] == "hello x"
        assert entry["logger"] == "mediabroker.test"
        assert "timestamp" in entry
        assert "context" not in entry

    def test_extra_fields_in_context(self) -> None:
        entry = self._format(returncode=1, command="ffmpeg")
        assert entry["context"] == {"returncode": 1, "command": "ffmpeg"}

    def test_download_context_fields(self) -> None:
        entry = self._format(request_id="abc", url="https://x", request_tag="[abc] ")
        assert entry["request_id"] == "abc"
        assert entry["url"] == "https://x"
        assert "context" not in entry

    def test_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "t", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: boom" in entry["exception"]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_stderr_handler_by_default(self, restore_root_logger) -> None:
        configure_logging(LoggingConfig(level="debug"))
        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert any(isinstance(f, DownloadContextFilter) for f in handler.filters)

    def test_file_handler_json(self, restore_root_logger, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "broker.log"
        configure_logging(LoggingConfig(file=log_file, format="json"))

        with download_context("req00001", "https://x"):
            logging.getLogger("mediabroker.test").info("started")
        for handler in restore_root_logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["message"] == "started"
        assert entry["request_id"] == "req00001"
        assert entry["url"] == "https://x"

    def test_text_format_includes_request_tag(
        self, restore_root_logger, tmp_path: Path
    ) -> None:
        log_file = tmp_path / "broker.log"
        configure_logging(LoggingConfig(file=log_file))

        with download_context("req00002"):
            logging.getLogger("mediabroker.test").warning("careful")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert "[req00002] mediabroker.test - WARNING - careful" in log_file.read_text()

    def test_unwritable_file_falls_back_to_stderr(
        self, restore_root_logger, tmp_path: Path, capsys
    ) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        configure_logging(LoggingConfig(file=blocker / "sub" / "x.log"))

        assert "Could not open log file" in capsys.readouterr().err
        assert len(restore_root_logger.handlers) == 1
