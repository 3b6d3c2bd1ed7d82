"""Logging configuration with structured JSON support and correlation IDs."""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

# Set per evaluation so every log line of one rule run can be grouped.
_CORRELATION_ID: ContextVar[str] = ContextVar("correlation_id", default="")


class JsonFormatter(logging.Formatter):
    """Format logs as structured JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "thread": record.threadName,
            "correlation_id": _CORRELATION_ID.get(),
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_context"):
            payload.update(record.extra_context)  # type: ignore[attr-defined]

        return json.dumps(payload, default=str)


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends ``extra_context`` as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "extra_context", None)
        if context:
            pairs = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} | {pairs}"
        return line


def new_correlation_id() -> str:
    """Start a fresh correlation ID for the current context."""
    cid = uuid.uuid4().hex[:12]
    _CORRELATION_ID.set(cid)
    return cid


def get_correlation_id() -> str:
    return _CORRELATION_ID.get()


def configure_logging(level: str = "INFO", *, json_logs: bool = False) -> None:
    """Configure global logging."""
    handler = logging.StreamHandler(sys.stdout)
    if json_logs:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ContextFormatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    logging.basicConfig(level=level.upper(), handlers=[handler], force=True)

    # Suppress noisy libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    *,
    exc_info: bool = False,
    **context: Any,
) -> None:
    logger.log(level, message, exc_info=exc_info, extra={"extra_context": context})

