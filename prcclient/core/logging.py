"""Structured logging configuration for the client.

The library itself only creates loggers under the ``prcclient`` namespace.
Applications call :func:`setup_logging` to get text or JSON output, with the
pacing and retry trace fields rendered alongside the message.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from prcclient.core.config import Settings, settings as default_settings


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Outputs log records as JSON objects for consumption by log aggregation
    systems.
    """

    STANDARD_FIELDS = ["name", "levelname", "message", "timestamp"]

    # Contextual fields emitted by the pacing and request layers
    CONTEXT_FIELDS = [
        "event",         # Trace event name (enqueue, admit, retry, ...)
        "route",         # Normalized route the pacer governs
        "method",        # HTTP method
        "url",           # Resolved request URL
        "status_code",   # HTTP response status
        "attempt",       # Retry attempt number (0-based)
        "wait_ms",       # Delay applied before the next start
        "duration_ms",   # Transport call duration in milliseconds
    ]

    def __init__(
        self,
        fields: Optional[list] = None,
        datefmt: Optional[str] = None,
    ):
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
            if hasattr(record, field):
                value = getattr(record, field)
                if value is not None:
                    log_data[field] = value

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in self.CONTEXT_FIELDS:
                continue
            log_data.setdefault("extra", {})[key] = value

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message",
    "asctime", "timestamp", "logger", "level", "source", "taskName",
})


class ContextFilter(logging.Filter):
    """Logging filter that adds default values for the context fields.

    Lets the ``structured`` text format reference ``%(route)s`` and friends
    on records that were logged without them.
    """

    CONTEXT_DEFAULTS = {field: None for field in JSONFormatter.CONTEXT_FIELDS}

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True


def get_logging_config(config: Optional[Settings] = None) -> Dict[str, Any]:
    """Get logging configuration dictionary.

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    cfg = config or default_settings
    log_format = cfg.log_format.lower()
    log_level = cfg.log_level.upper()

    formatters = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "structured": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - event=%(event)s - route=%(route)s - status_code=%(status_code)s"
        },
    }

    if log_format == "json":
        formatters["json"] = {
            "()": "prcclient.core.logging.JSONFormatter",
        }
        default_formatter = "json"
    else:
        default_formatter = "structured" if log_format == "structured" else "standard"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": default_formatter,
            "stream": sys.stderr,
            "filters": ["context"],
        },
    }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "filters": {
            "context": {
                "()": "prcclient.core.logging.ContextFilter",
            },
        },
        "handlers": handlers,
        "loggers": {
            "prcclient": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


def setup_logging(config: Optional[Settings] = None) -> None:
    """Configure logging for an application using the client."""
    logging.config.dictConfig(get_logging_config(config))


def get_logger(name: str = "prcclient") -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def get_log_context(
    event: Optional[str] = None,
    route: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Create a log context dictionary for use with the ``extra`` parameter.

    Example:
        >>> logger.debug(
        ...     "admit",
        ...     extra=get_log_context(event="admit", route="/v1/server", running=1),
        ... )
    """
    context = {"event": event, "route": route}
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
