"""Logging setup for prop-exchange.

Ledger, marketplace and emitter records carry exchange context such as
``property_id``, ``seller`` or ``event_type`` as record attributes, passed
with ``extra=``. The standard format appends that context as ``key=value``
pairs; the JSON format puts it under ``context``.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Record attributes recognised as exchange context, in output order
CONTEXT_FIELDS = (
    "event_type",
    "subject",
    "property_id",
    "seller",
    "buyer",
    "holder",
    "operator",
    "quantity",
    "amount",
    "price",
)

QUIET_LIBRARIES = ("confluent_kafka", "faker")


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """Route prop-exchange logs to stdout.

    Parameters
    ----------
    level : str
        Log level name; unknown names fall back to INFO.
    format_type : str
        "standard" for readable lines or "json" for one object per line.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = JsonFormatter() if format_type == "json" else ContextFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    logging.getLogger("prop_exchange").setLevel(log_level)
    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)


def context_of(record: logging.LogRecord) -> dict[str, Any]:
    """Exchange context attached to ``record``."""
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


def event_context(event_type: str, subject: str, data: dict[str, Any]) -> dict[str, Any]:
    """``extra=`` mapping describing an emitted event."""
    context = {"event_type": event_type, "subject": subject}
    context.update((name, data[name]) for name in CONTEXT_FIELDS if name in data)
    return context


class ContextFormatter(logging.Formatter):
    """Plain-text formatter that appends exchange context."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = context_of(record)
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = context_of(record)
        if context:
            log_data["context"] = context
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)
