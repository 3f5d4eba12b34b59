from __future__ import annotations

import json
import logging
import sys

from app.core.logging import JSONLogFormatter


def _record(message: str = "Failed to upload to Drive", exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "app.services.upload_relay", logging.ERROR, __file__, 1, message, (), exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_includes_extra_fields_and_project():
    formatter = JSONLogFormatter("production", "test-project")

    entry = json.loads(formatter.format(_record(user_id=42, error_reason="storageQuotaExceeded")))

    assert entry["message"] == "Failed to upload to Drive"
    assert entry["severity"] == "ERROR"
    assert entry["logger"] == "app.services.upload_relay"
    assert entry["environment"] == "production"
    assert entry["project_id"] == "test-project"
    assert entry["user_id"] == 42
    assert entry["error_reason"] == "storageQuotaExceeded"
    assert "msg" not in entry
    assert "args" not in entry


def test_formatter_omits_empty_project_and_renders_exceptions():
    formatter = JSONLogFormatter("development")
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record("failed", exc_info=sys.exc_info())

    entry = json.loads(formatter.format(record))

    assert "project_id" not in entry
    assert "ValueError: boom" in entry["exception"]
    assert "exc_info" not in entry
