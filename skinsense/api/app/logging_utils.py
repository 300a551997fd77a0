"""Structured JSON logging with request, user and booking context."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
import json
import logging
import sys
from typing import Any, Iterator
from uuid import UUID

_request_id_ctx_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_user_id_ctx_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
_booking_id_ctx_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "booking_id", default=None
)


class RequestContextFilter(logging.Filter):
    """Inject request scoped context variables into log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx_var.get()
        record.user_id = _user_id_ctx_var.get()
        # an explicit extra={"booking_id": ...} wins over the bound booking
        if getattr(record, "booking_id", None) is None:
            record.booking_id = _booking_id_ctx_var.get()
        return True


class JSONLogFormatter(logging.Formatter):
    """Serialize log records as JSON with context metadata."""

    def __init__(self) -> None:  # pragma: no cover - trivial
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": record.__dict__.get("request_id"),
            "user_id": record.__dict__.get("user_id"),
            "booking_id": record.__dict__.get("booking_id"),
        }

        standard_attributes = {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "exc_info",
            "exc_text",
            "stack_info",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "taskName",
            "process",
            "message",
        }

        for key, value in record.__dict__.items():
            if key in ("request_id", "user_id", "booking_id"):
                continue
            if key.startswith("_") or key in standard_attributes:
                continue
            log_entry[key] = value

        if record.exc_info:
            log_entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


_configured = False


def configure_logging(level: int = logging.INFO) -> None:
    """Configure the root logger for structured JSON output."""

    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONLogFormatter())
    handler.addFilter(RequestContextFilter())

    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(level)
    root_logger.addHandler(handler)

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.handlers = []
        logger.propagate = True

    _configured = True


def set_user_context(user_id: UUID | str | None) -> None:
    """Bind the acting user to the current logging context."""

    if user_id is None:
        _user_id_ctx_var.set(None)
    else:
        _user_id_ctx_var.set(str(user_id))


@contextmanager
def booking_context(booking_id: UUID | str | None) -> Iterator[None]:
    """Tag every record logged inside the block with ``booking_id``."""

    token = _booking_id_ctx_var.set(str(booking_id) if booking_id is not None else None)
    try:
        yield
    finally:
        _booking_id_ctx_var.reset(token)


def get_current_user_id() -> str:
    """Return the user id bound to the current context."""

    return _user_id_ctx_var.get() or "anonymous"


def get_request_id() -> str:
    """Return the request id bound to the current context."""

    request_id = _request_id_ctx_var.get()
    return request_id or "unknown"


__all__ = [
    "configure_logging",
    "get_current_user_id",
    "booking_context",
    "get_request_id",
    "set_user_context",
    "_request_id_ctx_var",
    "_user_id_ctx_var",
    "_booking_id_ctx_var",
]
