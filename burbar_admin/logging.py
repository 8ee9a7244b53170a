from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any

from burbar_admin.config import get_log_path, load_config

# Correlation ID for tracing one chat request or tool call through the logs
_correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


@contextmanager
def correlation_context(cid: str | None = None) -> Generator[str, None, None]:
    """Context manager for setting a correlation ID for a block of code."""
    token = _correlation_id.set(cid or uuid.uuid4().hex[:12])
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


class CorrelationFilter(logging.Filter):
    """Logging filter that adds correlation_id to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get() or "-"
        return True


class StructuredFormatter(logging.Formatter):
    """JSON structured log formatter for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", "-"),
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_data"):
            log_entry["data"] = record.extra_data
        return json.dumps(log_entry, default=str)


def configure_logging(config: dict[str, Any] | None = None) -> None:
    cfg = config or load_config()
    level_name = str(cfg.get("logging", {}).get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    use_json = cfg.get("logging", {}).get("json_format", False)

    log_path = get_log_path(cfg)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level)

    if root.handlers:
        # Avoid duplicate handlers when configured twice in one process.
        return

    correlation_filter = CorrelationFilter()

    if use_json:
        fmt = StructuredFormatter()
    else:
        fmt = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(correlation_id)s | %(name)s | %(message)s"
        )

    # StreamHandler defaults to stderr; stdout belongs to the MCP transport.
    stream = logging.StreamHandler()
    stream.setFormatter(fmt)
    stream.addFilter(correlation_filter)
    root.addHandler(stream)

    file_handler = RotatingFileHandler(
        log_path, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    file_handler.setFormatter(fmt)
    file_handler.addFilter(correlation_filter)
    root.addHandler(file_handler)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **extra: Any,
) -> None:
    """Log a message with additional structured context data."""
    if not logger.isEnabledFor(level):
        return
    record = logger.makeRecord(
        logger.name,
        level,
        "(unknown)",
        0,
        message,
        (),
        None,
    )
    record.extra_data = extra
    logger.handle(record)
