"""Log formatting and root-logger setup.

With ``SQL_FINGERPRINT_STRUCTURED_LOGGING=true`` each record is written as a
single-line JSON object that log aggregators can index without regex
parsing::

    {
        "timestamp": "2026-05-15T12:34:56.789012+00:00",
        "level": "WARNING",
        "logger": "sql_fingerprint.fingerprint",
        "message": "Could not render statement; keeping original SQL",
        "exc_info": "Traceback ..."  // present only on exceptions
    }

Otherwise a plain text handler is installed.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

from sql_fingerprint.config import Settings

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Batch context passed via ``extra={"batch_index": ...}``.
        batch_index = getattr(record, "batch_index", None)
        if batch_index is not None:
            payload["batch_index"] = batch_index

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(settings: Settings) -> logging.Handler:
    """Replace the root logger's handlers with one configured from *settings*.

    Returns the installed handler.
    """
    handler = logging.StreamHandler()
    if settings.structured_logging:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level)

    if settings.structured_logging:
        logging.getLogger(__name__).info("Structured JSON logging enabled")
    return handler
