"""
Logging Configuration
JSON log lines for the runtime bootstrap.

Provides:
- CustomJsonFormatter: one JSON object per record, tagged with the current invocation
- setup_logging: YAML dictConfig loader with ${VAR} substitution
"""

import json
import logging
import logging.config
import os
import string
from datetime import datetime, timezone

import yaml

from .request_context import get_request_id, get_trace_id


STANDARD_ATTRS = {
    "args",
    "asctime",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
}


class CustomJsonFormatter(logging.Formatter):
    """
    JSON Formatter.

    Fields:
      - _time: ISO8601 timestamp (millisecond precision)
      - level: Log level
      - logger: Logger name (e.g. bootstrap.runtime)
      - message: Log message
      - trace_id: Lambda-Runtime-Trace-Id of the invocation in flight
      - aws_request_id: Request ID of the invocation in flight
    """

    def format(self, record: logging.LogRecord) -> str:
        trace_id = getattr(record, "trace_id", None) or get_trace_id()
        request_id = getattr(record, "aws_request_id", None) or get_request_id()

        log_data = {
            "_time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if trace_id:
            log_data["trace_id"] = trace_id
        if request_id:
            log_data["aws_request_id"] = request_id

        # Include extra fields
        for key, value in record.__dict__.items():
            if key not in STANDARD_ATTRS and not key.startswith("_") and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config_path: str, log_level: str = "INFO"):
    """
    Load the YAML config, substitute environment variables, and initialize logging.
    """
    if not config_path or not os.path.exists(config_path):
        logging.basicConfig(level=log_level)
        return

    with open(config_path, "r", encoding="utf-8") as f:
        # Supports ${LOG_LEVEL} format.
        template = string.Template(f.read())

        mapping = os.environ.copy()
        mapping.setdefault("LOG_LEVEL", log_level)

        content = template.safe_substitute(mapping)
        config = yaml.safe_load(content)
        logging.config.dictConfig(config)
