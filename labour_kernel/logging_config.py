"""
Structured JSON logging for the labour ledger.

Every ledger logger lives under the ``labour_kernel`` namespace and writes
one JSON object per line.  A line carries:

    ts, level, logger, message      always
    correlation_id .. trace_id      whatever LogContext currently holds
    extra={...} keys                the event's own fields
    exc_*                           type, message, code and the structured
                                    attributes of a raised LabourKernelError

Context fields win over ``extra`` keys of the same name, so a payment id
bound for the request cannot be masked by a call site.
"""

__all__ = [
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

_LOGGER_PREFIX = "labour_kernel"

CONTEXT_FIELDS = (
    "correlation_id",
    "actor_id",
    "worker_id",
    "project_id",
    "payment_id",
    "trace_id",
)

_context: ContextVar[Mapping[str, str]] = ContextVar("labour_log_context", default={})


class LogContext:
    """
    Request-scoped log fields, safe across threads and tasks.

    Values are stored as strings.  Names outside CONTEXT_FIELDS are ignored,
    so call sites can pass ``worker_id=7`` without worrying about which
    fields the formatter knows.
    """

    @staticmethod
    def _accepted(values: Mapping[str, Any]) -> dict[str, str]:
        return {k: str(v) for k, v in values.items() if k in CONTEXT_FIELDS and v is not None}

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set context fields.  None values leave the current value alone."""
        _context.set({**_context.get(), **cls._accepted(fields)})

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator[type["LogContext"]]:
        """Set fields for the duration of a ``with`` block, then restore."""
        token = _context.set({**_context.get(), **cls._accepted(fields)})
        try:
            yield cls
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if name.startswith("_") or name == "code":
            continue
        fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger named ``labour_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the ``labour_kernel`` logger.

    Only the first call has any effect.  Records do not propagate to the
    root logger, so host applications keep their own formatting.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

        root = logging.getLogger(_LOGGER_PREFIX)
        root.setLevel(level.upper() if isinstance(level, str) else level)
        root.propagate = False

        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)


def reset_logging() -> None:
    """Undo configure_logging().  Tests only."""
    global _configured
    with _lock:
        _configured = False
        root = logging.getLogger(_LOGGER_PREFIX)
        root.handlers.clear()
        root.setLevel(logging.WARNING)
