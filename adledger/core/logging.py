"""ADLEDGER — Structured JSON Logging.

Every logger lives under the `adledger.` namespace and writes one JSON
object per line to stdout. Ingest context travels in `extra=`.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from adledger.config import settings

# Context keys copied from `extra=` onto the JSON line
EXTRA_FIELDS = (
    "import_id",
    "client_id",
    "dataset",
    "duration_ms",
    "status_code",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ingest context when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)}
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def _level() -> int:
    level = logging.getLevelName(settings.log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Named `adledger.<name>` logger with the JSON handler attached once."""
    logger = logging.getLogger(f"adledger.{name}")
    if not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(_level())
    return logger
