"""Structured JSON Logging with Correlation ID Support"""
import json
import logging
import os
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

from ..config.settings import settings


# Correlation id of the request or scheduler run being served
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# `extra=` keys copied into the JSON line when present
RECORD_FIELDS = (
    "entity_id", "entity_type", "workflow_id", "status_id", "from_status_id",
    "to_status_id", "actor_id", "node_id", "error_code", "record_id",
)

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5


class JsonFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_obj["correlation_id"] = correlation_id

        for field in RECORD_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_obj[field] = getattr(value, "value", value)

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


def _rotating_file(path: str, formatter: logging.Formatter, level: int = logging.NOTSET) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """
    Configure the root logger: stdout, logs/app.log and logs/error.log,
    all JSON. Safe to call more than once.
    """
    os.makedirs(settings.logs_path, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = JsonFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_rotating_file(os.path.join(settings.logs_path, "app.log"), formatter))
    root_logger.addHandler(
        _rotating_file(os.path.join(settings.logs_path, "error.log"), formatter, logging.ERROR)
    )

    # Third-party loggers
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> Token:
    """Bind a correlation id to the current context; returns the token for reset"""
    return correlation_id_var.set(correlation_id)


def reset_correlation_id(token: Token) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()
