"""
Structured Logging

JSON lines in production, human-readable text in development.
Extra context passed via `extra=` is copied into the JSON entry
when the key is on the allow-list below.

Usage:
    from draftclear.logging import get_logger
    logger = get_logger("analyzer")
    logger.info("Analysis complete", extra={"ai_score": 72, "flags_count": 4})
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone


LOG_LEVEL = os.getenv("DRAFTCLEAR_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("DRAFTCLEAR_LOG_FORMAT", "json")  # "json" or "text"

_EXTRA_FIELDS = (
    "ai_score", "model_score", "scan_mode", "source", "flags_count",
    "cache_hit", "key_id", "tier", "rule_id", "error", "error_type",
    "duration_ms", "status_code", "method", "path", "iterations",
)


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: getattr(record, key)
        for key in _EXTRA_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """Formats log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable format for development. Extras trail as key=value pairs."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if extras:
            line += "  " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging():
    """Configure the draftclear logger tree. Call once at app startup."""
    root = logging.getLogger("draftclear")
    root.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if LOG_FORMAT == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())
    root.addHandler(handler)

    # Quiet third-party chatter
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """Get a named logger under the draftclear namespace."""
    return logging.getLogger(f"draftclear.{name}")
