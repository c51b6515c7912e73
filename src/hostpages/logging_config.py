"""Logging setup for hostpages: one line per request, text or JSON."""

import json
import logging
import sys
from datetime import datetime, timezone

# Attributes the request middleware attaches via ``extra=``. ``key`` is the
# resolved storage key and is absent for unmapped routes.
REQUEST_FIELDS = ("request_id", "method", "host", "path", "key", "status", "duration_ms")

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Render a record as a single-line JSON object.

    Request fields that are unset on the record are left out rather than
    written as null.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name))
            for name in REQUEST_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Send all logging, uvicorn's included, to one stderr handler.

    Args:
        level: Log level name. Unknown names fall back to INFO.
        fmt: ``"json"`` for JSONFormatter, anything else for plain text.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(numeric_level)
