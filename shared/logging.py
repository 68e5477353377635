"""Structured JSON logging for the prediction service."""
import json
import logging
import sys
from datetime import datetime, timezone


class StructuredFormatter(logging.Formatter):
    """Render each record as one JSON line, carrying `extra=` fields through."""

    STANDARD_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
        'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
        'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'getMessage', 'taskName'
    }

    def __init__(self, service_name: str = ""):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.service_name:
            log_data["service"] = self.service_name
        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith('_'):
                log_data[key] = value
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def setup_logging(service_name: str, level: int | str = logging.INFO) -> logging.Logger:
    """Install the JSON handler on the root logger and return the service logger.

    Module loggers (feeds.*, council.*, ...) propagate to the root, so every
    component ends up in the same structured stream.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(service_name))
    root.addHandler(handler)
    # httpx logs every request at INFO, which would leak the TAAPI secret query param
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger(service_name)
