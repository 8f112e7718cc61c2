"""
JSON log lines tagged with the request's correlation id.

CorrelationIdMiddleware stores an id per request in a contextvar; every line
written while that request runs carries it, along with any tenant ids passed
through `extra=`. One booking can then be followed from the slot listing to
the locked re-check and the insert.
"""
import json
import logging
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Record attributes promoted to top-level JSON keys
EXTRA_FIELDS = ("business_id", "professional_id", "appointment_id", "error_code")

# Chatty at INFO; capped at WARNING
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def get_correlation_id() -> Optional[str]:
    return correlation_id_ctx.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_ctx.set(cid)


def generate_correlation_id() -> str:
    """32-char hex id for a request without an X-Correlation-ID header."""
    return uuid.uuid4().hex


class StructuredJsonFormatter(logging.Formatter):
    """
    One JSON object per record:
    {"timestamp", "level", "correlation_id", "module", "message"} plus any
    EXTRA_FIELDS present on the record and "exception" when exc_info is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "correlation_id": get_correlation_id(),
            "module": record.name,
            "message": record.getMessage(),
        }
        entry.update({
            key: getattr(record, key)
            for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_structured_logging(log_level: str = "INFO") -> None:
    """Route the root logger to a single JSON stream handler. Safe to call again."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
