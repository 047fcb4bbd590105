"""
Structured logging for the engine.

Engine modules log through `logging.getLogger(__name__)` and attach
identifiers under `extra={"extra_fields": {...}}`. Both formatters render
those fields: JSON merges them into the record, text appends them as
key=value pairs.

The host application calls `setup_logging()` once; importing the package
never touches logging configuration.
"""
import logging
import sys
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rehab_adherence.core.config import settings

ENGINE_LOGGER = "rehab_adherence"
SERVICE_NAME = "rehab-adherence"


def plan_log_fields(plan: Any) -> Dict[str, Any]:
    """Identifiers that tie a log line to one worker's plan."""
    return {"plan_id": plan.id, "worker_id": plan.worker_id, "case_id": plan.case_id}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, "extra_fields", None) or {}


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with extra_fields merged at top level."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "environment": settings.ENVIRONMENT,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(_extra_fields(record))
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for development, extra_fields appended."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in sorted(fields.items()))
        return line


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Logger:
    """
    Attach a stdout handler to the engine's package logger.

    JSON is used when LOG_FORMAT is json or the environment is production;
    arguments override LOG_LEVEL / LOG_FORMAT. Calling it again replaces the
    handler rather than adding a second one. The package logger stops
    propagating so a host root handler does not print each line twice.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    log_format = fmt or settings.LOG_FORMAT

    if log_format == "json" or settings.ENVIRONMENT == "production":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = TextFormatter()

    engine_logger = logging.getLogger(ENGINE_LOGGER)
    engine_logger.setLevel(log_level)
    engine_logger.propagate = False
    engine_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)
    engine_logger.addHandler(handler)

    return engine_logger
