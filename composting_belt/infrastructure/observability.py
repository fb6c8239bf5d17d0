"""Structured Logging — one JSON object per line for belt operations.

Invariants:
    - Every line carries timestamp, level, logger and message
    - Belt context (request_id, batch_code, facility_code, station, cycle_id,
      error_code, path) is copied from the record when set
    - setup_logging is idempotent: a second call replaces its handler

Design Decisions:
    - timestamp is the record's creation time, not the formatting time
    - Per-request state (request_id, counters) lives in OperationContext
"""

import logging
import json
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "request_id", "batch_code", "facility_code", "station",
    "cycle_id", "error_code", "path",
)

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
HANDLER_NAME = "composting_belt"


class JSONFormatter(logging.Formatter):
    """Render a record and its belt context as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key)) for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the service handler on the root logger (json or text)."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
