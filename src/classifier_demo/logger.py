"""Structured JSON logging for the classification service.

Every record becomes one JSON object per line. Request handlers call
new_request_id() so that all lines logged while serving a request, including
those from the session and registry, carry the same request_id.

Author: Matthew Hong
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Iterable, Optional, TextIO

# Request ID of the request being served in the current context
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

EXTRA_FIELDS = (
    "endpoint",
    "latency_ms",
    "status_code",
    "provider",
    "model",
    "class_id",
    "port",
)
"""Record attributes copied into the JSON line when a call passes them via extra=."""


def new_request_id() -> str:
    """Start a request context and return its ID."""
    request_id = uuid.uuid4().hex
    request_id_var.set(request_id)
    return request_id


class JSONFormatter(logging.Formatter):
    """Format records as single-line JSON.

    Output keys: timestamp, level, logger, message, then request_id when a
    request is being served, then any of the configured extra fields present
    on the record, then exception if exc_info was given.
    """

    def __init__(self, fields: Iterable[str] = EXTRA_FIELDS) -> None:
        super().__init__()
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id

        entry.update(
            (key, getattr(record, key)) for key in self.fields if hasattr(record, key)
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        # numpy scalars and paths fall back to str()
        return json.dumps(entry, default=str)


def setup_logging(log_level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Handler:
    """Route the root logger through a single JSON handler.

    Args:
        log_level: Level name, case-insensitive (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream (default: stdout)

    Returns:
        The installed handler

    Raises:
        ValueError: If log_level is not a logging level name
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    return handler
