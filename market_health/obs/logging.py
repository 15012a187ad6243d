"""
Structured JSON Lines logging for the market health service.

Every entry is a single JSON object carrying:
- Timestamp (ISO 8601 UTC)
- Log level
- Session ID for correlation across one CLI invocation
- Event type for filtering
- Module name
- Human-readable message
- Extra structured data

Example log entry:
    {"ts": "2024-01-15T10:30:00Z", "level": "INFO", "session_id": "abc123",
     "event": "cache_miss", "module": "service", "msg": "Computing health",
     "extra": {"key": "health:INJ-USDT"}}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class LogSettings:
    """
    Configuration for logger initialization.

    Attributes:
        level: Log level string (DEBUG, INFO, WARNING, ERROR).
        session_id: Identifier stamped on every entry of one invocation.
        log_file: Optional path to log file (None for console only).
        jsonl: If True, use JSON Lines format; otherwise plain text.
    """
    level: str
    session_id: str
    log_file: Path | None
    jsonl: bool


class JsonLineFormatter(logging.Formatter):
    """Formats each record as one JSON object per line."""

    def __init__(self, session_id: str):
        super().__init__()
        self._session_id = session_id

    def format(self, record: logging.LogRecord) -> str:
        event = getattr(record, "event", "log")
        extra = getattr(record, "extra", {})
        if not isinstance(extra, dict):
            extra = {"value": extra}

        payload = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "session_id": self._session_id,
            "event": event,
            "module": record.module,
            "msg": record.getMessage(),
            "extra": extra,
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logger(settings: LogSettings) -> logging.Logger:
    """
    Create the root ``market_health`` logger for one session.

    Module loggers (``logging.getLogger(__name__)``) propagate into it, so
    the handlers configured here receive every event the package emits.
    Output goes to stderr so JSON results on stdout stay machine-readable.
    """
    logger = logging.getLogger("market_health")
    logger.setLevel(settings.level)
    logger.handlers.clear()
    logger.propagate = False

    formatter = JsonLineFormatter(settings.session_id) if settings.jsonl else None

    stream_handler = logging.StreamHandler()
    if formatter:
        stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
        if formatter:
            file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    message: str,
    *,
    exc_info: logging._ExcInfoType | None = None,
    **extra: Any,
) -> None:
    """
    Log a structured event with typed metadata.

    Example:
        >>> log_event(logger, logging.INFO, "cache_hit",
        ...           "Serving cached result", key="risk:INJ-USDT")
    """
    logger.log(level, message, extra={"event": event, "extra": extra}, exc_info=exc_info)
