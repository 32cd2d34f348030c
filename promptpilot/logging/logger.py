"""
Structured JSON logging for the prompt pipeline service.

Every log entry carries the service name and, when the caller passes
``extra={"_extra": {...}}``, the correlation fields of the invocation
(identity id, prompt id, error kind). Output goes to stdout so the hosting
platform can aggregate it.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service = service_name

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self._service,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        extra = getattr(record, "_extra", None)
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(service_name: str, level_name: str | None = None) -> logging.Logger:
    """
    Configure the root logger with JSON output to stdout.

    Call once at startup (from the FastAPI lifespan). ``level_name`` wins
    over the LOG_LEVEL env var when given.
    """
    level_name = (level_name or os.environ.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Silence noisy third-party loggers
    for noisy in ("uvicorn.access", "httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(service_name)
    logger.info("Logging initialized", extra={"_extra": {"level": level_name}})
    return logger


def log_fields(**fields: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping understood by JSONFormatter, dropping None values."""
    return {"_extra": {k: v for k, v in fields.items() if v is not None}}
