"""JSON log output for the relay service."""
from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from app.core.config import Settings

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_SERVER_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


class JSONLogFormatter(logging.Formatter):
    """Render each record as one JSON line tagged with environment and project."""

    def __init__(self, app_env: str, project_id: str = "") -> None:
        super().__init__()
        self._static: dict[str, Any] = {"environment": app_env}
        if project_id:
            self._static["project_id"] = project_id

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self._static,
        }
        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(settings: Settings) -> None:
    """Route root and uvicorn loggers through a single JSON stream handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(JSONLogFormatter(settings.app_env, settings.gcp_project_id))

    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)

    for name in _SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.setLevel(logging.INFO)
        server_logger.propagate = False

    # httpx logs full request URLs at INFO, which include the bot token.
    logging.getLogger("httpx").setLevel(logging.WARNING)
