"""Tests for the JSON log formatter."""

import json
import logging

from student_service.logging_config import (
    StructuredJsonFormatter, get_logger, log_with_context, request_id_var
)


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.setFormatter(StructuredJsonFormatter())
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


def test_log_line_carries_channel_and_request_id():
    logger = get_logger("students")
    handler = _Capture()
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    token = request_id_var.set("req-1")
    try:
        log_with_context(logger, "INFO", "Created student",
                         context={"student_id": "abc"}, extra_data={"duration_ms": 1.5})
    finally:
        request_id_var.reset(token)
        logger.removeHandler(handler)

    entry = json.loads(handler.lines[-1])
    assert entry["channel"] == "students"
    assert entry["level"] == "INFO"
    assert entry["message"] == "Created student"
    assert entry["context"] == {"request_id": "req-1", "student_id": "abc"}
    assert entry["extra"] == {"duration_ms": 1.5}
    assert entry["timestamp"].endswith("Z")


def test_foreign_logger_uses_app_channel():
    record = logging.LogRecord("uvicorn.error", logging.WARNING, __file__, 1, "boom", None, None)
    entry = json.loads(StructuredJsonFormatter().format(record))
    assert entry["channel"] == "app"
