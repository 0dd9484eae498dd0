#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging configuration for vidharvest.

Provides structured JSON logging, a filter that keeps API keys out of log
output, and the setup function used by the server entry point.
"""

import logging
import logging.handlers
import json
import sys
from typing import Dict, Any, Iterable, Optional


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each record becomes one JSON object; context fields passed to
    StructuredLogger are merged in at the top level.
    """

    def format(self, record):
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "name": record.name,
            "file": record.filename,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        extra_data = getattr(record, "data", None)
        if isinstance(extra_data, dict):
            for key, value in extra_data.items():
                log_data[key] = value

        return json.dumps(log_data, default=str)


class SecretRedactingFilter(logging.Filter):
    """Replaces known secrets in log messages and context fields with a masked form."""

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    @staticmethod
    def mask(secret: str) -> str:
        if len(secret) > 8:
            return f"{secret[:8]}..."
        return "***"

    def _redact(self, text: str) -> str:
        for secret in self.secrets:
            if secret in text:
                text = text.replace(secret, self.mask(secret))
        return text

    def filter(self, record):
        if not self.secrets:
            return True

        message = record.getMessage()
        redacted = self._redact(message)
        if redacted != message:
            record.msg = redacted
            record.args = None

        extra_data = getattr(record, "data", None)
        if isinstance(extra_data, dict):
            record.data = {
                key: self._redact(value) if isinstance(value, str) else value
                for key, value in extra_data.items()
            }
        return True


class StructuredLogger:
    """Logger that supports structured logging with additional context data."""

    def __init__(self, name: str, extra: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.extra = extra or {}

    def bind(self, **kwargs) -> "StructuredLogger":
        """Return a logger that adds the given fields to every record."""
        bound = StructuredLogger(self.logger.name, {**self.extra, **kwargs})
        return bound

    def _log(self, level: int, message: str, exc_info=None, **kwargs):
        extra_data = {**self.extra}
        if kwargs:
            extra_data.update(kwargs)
        self.logger.log(level, message, exc_info=exc_info, extra={"data": extra_data})

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info=True, **kwargs):
        """Log an error message; includes the active traceback by default."""
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def critical(self, message: str, exc_info=True, **kwargs):
        self._log(logging.CRITICAL, message, exc_info=exc_info, **kwargs)


def setup_logging(log_level_console=logging.INFO, log_level_file=logging.DEBUG,
                  structured=True, log_file: Optional[str] = None,
                  secrets: Iterable[str] = ()):
    """Configure logging to console and a rotating file.

    Args:
        log_level_console: Level for the stdout handler.
        log_level_file: Level for the rotating file handler.
        structured: Emit JSON lines instead of plain text.
        log_file: Path of the log file; no file handler when empty.
        secrets: Values (API keys) to mask wherever they appear in a record.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    formatter = JSONFormatter() if structured else logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    redactor = SecretRedactingFilter(secrets)

    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(log_level_file)
            file_handler.addFilter(redactor)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not create log file '{log_file}': {e}", file=sys.stderr)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level_console)
    console_handler.addFilter(redactor)
    root_logger.addHandler(console_handler)

    root_logger.setLevel(min(log_level_console, log_level_file))

    logging.getLogger(__name__).info("Logging setup complete.")
