"""Process-wide logging setup for command-line entry points.

Library modules only ever call ``logging.getLogger(__name__)``; handlers
are installed here, once, by whichever entry point owns the process.
With ``TYPINGS_STRUCTURED_LOGGING=true`` each record is emitted as a
single-line JSON object so CI log collectors can index it.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import Any

from typings_engine.config import Settings

_TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(settings: Settings) -> None:
    """Install a single stderr handler on the root logger."""
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if settings.structured_logging:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)

    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
