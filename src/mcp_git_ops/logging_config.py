import json
import logging
import sys
from pathlib import Path
from typing import Optional

CONTEXT_FIELDS = ("session_id", "request_id", "operation", "duration_ms")


class SafeStreamHandler(logging.StreamHandler):
    """
    Stream handler that tolerates closed streams during shutdown.
    """

    def emit(self, record):
        try:
            super().emit(record)
        except (ValueError, OSError) as e:
            message = str(e).lower()
            if "closed file" in message or "bad file descriptor" in message:
                # stderr is gone once the client hangs up
                return
            raise


class StructuredLogFormatter(logging.Formatter):
    """
    Formats log records as structured JSON with contextual fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        elif record.exc_text:
            log_record["exception"] = record.exc_text
        return json.dumps(log_record, ensure_ascii=False)


def configure_logging(log_level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """
    Centralized logging configuration for MCP Git Ops.

    Logs go to stderr as JSON; stdout carries the MCP stdio transport.
    ``log_file`` adds a DEBUG level file handler with the same format.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    formatter = StructuredLogFormatter()

    handler = SafeStreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(log_level.upper())
    logging.getLogger("asyncio").setLevel("WARNING")
    logging.getLogger("git").setLevel("WARNING")
    logging.getLogger("mcp").setLevel("WARNING")
