"""Structured logging configuration for ratekeeper.

Uses Python's standard logging module, with an optional JSON formatter for
log aggregation in production environments.
"""

import json
import logging
import logging.config
import sys
import traceback
from datetime import datetime
from typing import Any, Dict, Optional

from ratekeeper.app.core.config import Settings, settings

# Attributes every LogRecord carries; anything else was passed via extra=
_RECORD_ATTRIBUTES = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "taskName",
    "message", "asctime",
})


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Each record becomes a single JSON object with the standard fields, the
    request context fields that are set, and any extra fields.
    """

    # Contextual fields for request tracking
    CONTEXT_FIELDS = [
        "client_key",    # Rate limit key of the caller
        "path",          # Request path
        "method",        # HTTP method
        "status_code",   # HTTP response status
    ]

    def __init__(self, datefmt: Optional[str] = None):
        super().__init__(datefmt=datefmt)

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

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES and key not in self.CONTEXT_FIELDS
        }
        if extra:
            log_data["extra"] = extra

        if record.exc_info and record.exc_info != (None, None, None):
            log_data["exception"] = traceback.format_exception(*record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ContextFilter(logging.Filter):
    """Logging filter that adds default request context fields.

    The structured text format references these fields, so records logged
    outside a request still need them.
    """

    CONTEXT_DEFAULTS = {
        "client_key": None,
        "path": None,
        "method": None,
        "status_code": None,
    }

    def filter(self, record: logging.LogRecord) -> bool:
        for field, default in self.CONTEXT_DEFAULTS.items():
            if not hasattr(record, field):
                setattr(record, field, default)
        return True


def get_logging_config(app_settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Get logging configuration dictionary.

    Args:
        app_settings: Settings to read log_level and log_format from
            (defaults to the global settings)

    Returns:
        Logging configuration dict compatible with logging.config.dictConfig
    """
    app_settings = app_settings or settings
    log_format = getattr(app_settings, "log_format", "text").lower()
    log_level = getattr(app_settings, "log_level", "INFO").upper()

    formatters = {
        "standard": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        },
        "structured": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s - client_key=%(client_key)s - path=%(path)s - method=%(method)s"
        },
    }

    if log_format == "json":
        formatters["json"] = {
            "()": "ratekeeper.app.core.logging.JSONFormatter",
        }
        default_formatter = "json"
    else:
        default_formatter = "structured" if log_format == "structured" else "standard"

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": default_formatter,
            "stream": sys.stdout,
            "filters": ["context"],
        },
        "error_console": {
            "class": "logging.StreamHandler",
            "level": "ERROR",
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
                "()": "ratekeeper.app.core.logging.ContextFilter",
            },
        },
        "handlers": handlers,
        "loggers": {
            "ratekeeper": {
                "level": log_level,
                "handlers": ["console", "error_console"],
                "propagate": False,
            },
            "uvicorn": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
    }


def setup_logging(app_settings: Optional[Settings] = None) -> None:
    """Configure logging for the application."""
    logging.config.dictConfig(get_logging_config(app_settings))

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str = "ratekeeper") -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def get_log_context(
    client_key: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
    **extra
) -> Dict[str, Any]:
    """Create a log context dictionary for use with the extra parameter.

    Example:
        >>> logger.info(
        ...     "Request rejected",
        ...     extra=get_log_context(client_key="10.0.0.1", path="/v1/items")
        ... )
    """
    context = {
        "client_key": client_key,
        "path": path,
        "method": method,
    }
    context.update(extra)
    return {k: v for k, v in context.items() if v is not None}
