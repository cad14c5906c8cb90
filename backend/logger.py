"""Structured logging configuration for the Carl assistant."""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from services.pii_sanitizer import sanitize

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Messages and string extras pass through the PII sanitizer, so an identifier
    that slips into a log call is never written out.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize(record.getMessage()),
        }

        if record.exc_info:
            log_data["exception"] = sanitize(self.formatException(record.exc_info))

        # session_id, error_code, status_code...
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            log_data[key] = sanitize(value) if isinstance(value, str) else value

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = "INFO") -> None:
    """Route all records through a single JSON handler on stderr."""
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers = [handler]
