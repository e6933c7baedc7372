"""Process-wide logger configuration."""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from typing import TextIO

TRACE = 5
LOGGER_NAME = "jk"

logging.addLevelName(TRACE, "TRACE")

_LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_LEVEL_NAMES = {
    TRACE: "trace",
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "fatal",
}

_lock = threading.Lock()
_configured = False


class _JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "ts": int(record.created * 1000),
            "caller": f"{record.pathname}:{record.lineno}",
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def parse_level(value: str = "") -> int:
    """Map a level name to a logging level; empty falls back to ``JK_LOG``, unknown to INFO."""
    if not value:
        value = os.environ.get("JK_LOG", "")
    return _LEVELS.get(value.lower(), logging.INFO)


def configure(level: str = "", stream: TextIO | None = None) -> logging.Logger:
    """Set up the CLI logger; only the first call has any effect."""
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    with _lock:
        if _configured:
            return logger
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(_JsonFormatter())
        logger.handlers = [handler]
        logger.setLevel(parse_level(level))
        logger.propagate = False
        _configured = True
    return logger


def get_logger() -> logging.Logger:
    """Return the CLI logger, configuring it with defaults on first use."""
    if not _configured:
        return configure()
    return logging.getLogger(LOGGER_NAME)