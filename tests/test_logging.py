"""Tests for structured logging."""

import json
import logging
import sys

import pytest

from mcp_git_ops.logging_config import (
    SafeStreamHandler,
    StructuredLogFormatter,
    configure_logging,
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="mcp_git_ops.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="git_stash on %s",
        args=("/repo",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredLogFormatter:
    def test_basic_fields(self):
        line = json.loads(StructuredLogFormatter().format(make_record()))
        assert line["level"] == "INFO"
        assert line["logger"] == "mcp_git_ops.test"
        assert line["message"] == "git_stash on /repo"
        assert "timestamp" in line
        assert "request_id" not in line

    def test_context_fields(self):
        record = make_record(
            request_id="abcd", session_id="s1", operation="git_stash", duration_ms=12.5
        )
        line = json.loads(StructuredLogFormatter().format(record))
        assert line["request_id"] == "abcd"
        assert line["session_id"] == "s1"
        assert line["operation"] == "git_stash"
        assert line["duration_ms"] == 12.5

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record()
            record.exc_info = sys.exc_info()
        line = json.loads(StructuredLogFormatter().format(record))
        assert "RuntimeError: boom" in line["exception"]


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_installs_structured_handler(self):
        configure_logging("debug")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], SafeStreamHandler)
        assert isinstance(root.handlers[0].formatter, StructuredLogFormatter)
        assert logging.getLogger("git").level == logging.WARNING

    def test_file_logging(self, temp_dir):
        log_file = temp_dir / "logs" / "server.log"
        configure_logging("INFO", log_file=log_file)

        logging.getLogger("mcp_git_ops.test").info("hello", extra={"request_id": "r1"})
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = json.loads(log_file.read_text().splitlines()[-1])
        assert line["message"] == "hello"
        assert line["request_id"] == "r1"
        for handler in logging.getLogger().handlers:
            handler.close()


class TestSafeStreamHandler:
    def test_closed_stream_is_tolerated(self, tmp_path):
        stream = open(tmp_path / "out.log", "w")
        handler = SafeStreamHandler(stream)
        handler.setFormatter(StructuredLogFormatter())
        stream.close()

        handler.emit(make_record())
