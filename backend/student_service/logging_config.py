"""
JSON log lines on stdout, one object per record.

Loggers are named ``student_service.<channel>`` (http, db, students); the
current request id is attached to every line emitted while a request is
being handled.
"""

import logging
import json
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

CHANNELS = ["http", "db", "students"]
LOGGER_PREFIX = "student_service"


def _channel_of(record: logging.LogRecord) -> str:
    if hasattr(record, "channel"):
        return record.channel
    prefix, _, channel = record.name.rpartition(".")
    return channel if prefix == LOGGER_PREFIX else "app"


class StructuredJsonFormatter(logging.Formatter):
    """Render a record as ``{timestamp, level, channel, message, context, extra}``."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        context = {"request_id": request_id_var.get("")}
        context.update(getattr(record, "context", None) or {})

        entry = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "channel": _channel_of(record),
            "message": record.getMessage(),
            "context": context,
            "extra": getattr(record, "extra_data", None) or {},
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO"):
    """Install the JSON handler on the root logger, replacing existing handlers."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        get_logger(channel).setLevel(numeric_level)

    return root_logger


def get_logger(channel: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_PREFIX}.{channel}")


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None):
    """
    Log ``message`` on ``logger`` at ``level`` (a level name).

    ``context`` holds identifiers such as student_id or email and is merged
    with the request id; ``extra_data`` holds measurements and error detail.
    """
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        message,
        extra={
            "context": context or {},
            "extra_data": extra_data or {},
            "channel": logger.name.rpartition(".")[2],
        },
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
