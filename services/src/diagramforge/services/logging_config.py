"""Structured logging helpers for the DiagramForge export services."""

from __future__ import annotations

import copy
import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

# Long strings (SVG markup, data URLs) are clipped before they reach the log.
MAX_FIELD_LENGTH = 512


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > MAX_FIELD_LENGTH:
        return f"{value[:MAX_FIELD_LENGTH]}...[{len(value) - MAX_FIELD_LENGTH} more chars]"
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, dict):
        return {key: _clip(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_clip(item) for item in value]
    return value


class JsonFormatter(logging.Formatter):
    """Simple JSON formatter for structured logs."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra_payload", None)
        if isinstance(extra, dict):
            payload.update(_clip(extra))
        return json.dumps(payload, ensure_ascii=False, default=str)


LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "diagramforge.services.logging_config.JsonFormatter",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
        }
    },
    "loggers": {
        "uvicorn.access": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "uvicorn.error": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "diagramforge.services": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
}


def configure_logging(level: str = "INFO") -> None:
    """Apply the structured logging configuration."""

    config = copy.deepcopy(LOGGING_CONFIG)
    config["loggers"]["diagramforge.services"]["level"] = level.upper()
    logging.config.dictConfig(config)


__all__ = ["JsonFormatter", "LOGGING_CONFIG", "configure_logging"]
