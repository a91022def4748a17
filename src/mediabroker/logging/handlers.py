"""Custom logging handlers for mediabroker.

Provides JSONFormatter for structured log output.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries, plus those set by Formatter.format()
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({}))
) | {"message", "asctime", "taskName"}

# Set by DownloadContextFilter
_DOWNLOAD_ATTRS = ("request_id", "url")


class JSONFormatter(logging.Formatter):
    """Format log records as one JSON object per line.

    Keys: timestamp (ISO-8601 UTC), level, logger, message. Inside a
    download, request_id and url are added at top level so every line of
    one request can be selected with a single key. Fields passed through
    ``extra`` are grouped under "context"; exceptions under "exception".
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON."""
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in _DOWNLOAD_ATTRS:
            value = getattr(record, name, None)
            if value:
                entry[name] = value

        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
            and key not in _DOWNLOAD_ATTRS
            and key != "request_tag"
            and not key.startswith("_")
        }
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)
