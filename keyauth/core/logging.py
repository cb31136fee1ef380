"""Structured logging configuration for the keyauth client.

This module provides a structured logging setup using Python's standard
logging module, with optional JSON formatting. Every client gets its own
named logger whose verbosity is driven by :class:`LoggerSettings`.
"""

import json
import logging
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from keyauth.core.config import LoggerSettings

# Most verbose level, below DEBUG. Used for request/response dumps.
DEV = 5
logging.addLevelName(DEV, "DEV")

LEVELS: Dict[str, int] = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "dev": DEV,
}

_HANDLER_MARKER = "_keyauth_handler"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON objects for consumption by log aggregation
    systems.
    """

    STANDARD_FIELDS = ["name", "levelname", "message", "timestamp"]

    # Contextual fields for request tracking
    CONTEXT_FIELDS = [
        "tag",  # Event type the line belongs to (init, login, add, ...)
        "endpoint",  # Base URL of the remote API
        "elapsed_ms",  # Request duration in milliseconds
        "status_code",  # HTTP response status
        "success",  # Application-level success flag
    ]

    _RESERVED = {
        "name", "msg", "args", "levelname", "levelno", "pathname",
        "filename", "module", "exc_info", "exc_text", "stack_info",
        "lineno", "funcName", "created", "msecs", "relativeCreated",
        "thread", "threadName", "processName", "process", "message",
        "asctime", "timestamp", "logger", "level", "source", "taskName",
    }

    def __init__(self, fields: Optional[list] = None, datefmt: Optional[str] = None):
        super().__init__(datefmt=datefmt)
        self.fields = fields or (self.STANDARD_FIELDS + self.CONTEXT_FIELDS)

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string representation of the log record
        """
        log_data: Dict[str, Any] = {}
        record.message = record.getMessage()

        log_data["timestamp"] = datetime.now().astimezone().isoformat()
        log_data["level"] = record.levelname
        log_data["logger"] = record.name
        log_data["message"] = record.message
        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        for field in self.CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        for key, value in record.__dict__.items():
            if key in self._RESERVED or key in self.CONTEXT_FIELDS:
                continue
            log_data.setdefault("extra", {})[key] = value

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Logging filter that adds default context fields to log records."""

    CONTEXT_DEFAULTS = {
        "tag": "-",
        "endpoint": None,
        "elapsed_ms": None,
        "status_code": None,
        "success": None,
    }

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "json":
        return JSONFormatter()
    return logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - [%(tag)s] %(message)s")


def get_logger(name: str = "keyauth") -> logging.Logger:
    """Get a logger instance with the specified name.

    Args:
        name: Logger name, defaults to "keyauth"

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def configure_client_logger(name: str, options: Optional[LoggerSettings] = None) -> logging.Logger:
    """Configure the logger owned by one client instance.

    The logger lives under the ``keyauth`` namespace, writes to stdout through
    a single handler and is disabled entirely when ``options.active`` is false.

    Args:
        name: Suffix of the logger name (e.g. "client", "seller")
        options: Logger options; inactive defaults when omitted

    Returns:
        The configured logger
    """
    options = options or LoggerSettings()
    logger = get_logger(f"keyauth.{name}")
    logger.setLevel(LEVELS[options.level])
    logger.propagate = False
    logger.disabled = not options.active

    handler = next((h for h in logger.handlers if getattr(h, _HANDLER_MARKER, False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        setattr(handler, _HANDLER_MARKER, True)
        handler.addFilter(ContextFilter())
        logger.addHandler(handler)
    handler.setFormatter(_build_formatter(options.log_format))
    return logger


def get_log_context(
    tag: Optional[str] = None,
    endpoint: Optional[str] = None,
    elapsed_ms: Optional[int] = None,
    status_code: Optional[int] = None,
    **extra,
) -> Dict[str, Any]:
    """Create a log context dictionary for use with the extra parameter.

    Example:
        >>> logger.debug(
        ...     "Sending request",
        ...     extra=get_log_context(tag="login", endpoint=base_url),
        ... )
    """
    context = {
        "tag": tag,
        "endpoint": endpoint,
        "elapsed_ms": elapsed_ms,
        "status_code": status_code,
    }
    context.update(extra)
    # Filter out None values
    return {k: v for k, v in context.items() if v is not None}
