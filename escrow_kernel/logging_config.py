"""
Structured JSON logging for the escrow kernel.

Every record is one JSON object.  The envelope is fixed::

    {"ts": ..., "level": ..., "logger": ..., "message": ...,
     "lease_id": ..., "operation": ..., "actor_id": ...}

The three lease fields come from the record's ``extra`` when given there,
otherwise from ``LogContext``; each is omitted when neither has it, and is
always a string when present.  Remaining ``extra`` keys follow the envelope.
A logged ``EscrowKernelError`` adds ``error_code`` and an ``error`` object
holding the exception's public attributes.
"""

__all__ = [
    "LEASE_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

LEASE_FIELDS = ("lease_id", "operation", "actor_id")

_LOGGER_PREFIX = "escrow_kernel"


class LogContext:
    """Lease fields bound for the duration of one kernel operation."""

    _fields: ContextVar[dict[str, str]] = ContextVar("escrow_log_fields", default={})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(cls._fields.get())

    @classmethod
    def clear(cls) -> None:
        cls._fields.set({})

    @classmethod
    @contextmanager
    def bind(
        cls,
        *,
        lease_id: str | None = None,
        operation: str | None = None,
        actor_id: str | None = None,
    ) -> Iterator[dict[str, str]]:
        """Layer fields over the current ones; the outer binding returns on exit."""
        given = {"lease_id": lease_id, "operation": operation, "actor_id": actor_id}
        merged = {**cls._fields.get(), **{k: v for k, v in given.items() if v is not None}}
        token = cls._fields.set(merged)
        try:
            yield dict(merged)
        finally:
            cls._fields.reset(token)


_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _jsonable(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line with the lease envelope."""

    def format(self, record: logging.LogRecord) -> str:
        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        bound = LogContext.get_all()

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in LEASE_FIELDS:
            value = extra.pop(name, None)
            if value is None:
                value = bound.get(name)
            if value is not None:
                payload[name] = str(value)
        for key, value in extra.items():
            payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            code = getattr(exc, "code", None)
            if code is not None:
                payload["error_code"] = code
                payload["error"] = {
                    k: v for k, v in vars(exc).items() if not k.startswith("_") and k != "code"
                }
            payload["exc_type"] = type(exc).__name__
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_jsonable)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``escrow_kernel`` namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Install one JSON handler on the kernel logger; later calls do nothing."""
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    if handler is None:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop the kernel's handlers so the next ``configure_logging`` applies. Tests only."""
    global _configured
    with _lock:
        _configured = False
    kernel_logger = logging.getLogger(_LOGGER_PREFIX)
    kernel_logger.handlers.clear()
    kernel_logger.setLevel(logging.WARNING)
