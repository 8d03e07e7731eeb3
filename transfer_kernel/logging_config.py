"""
Structured JSON logging for the transfer kernel.

Every kernel logger lives under the ``transfer_kernel`` namespace and
writes one JSON object per line.  Request-scoped fields (which transfer,
which CLI session) come from ``LogContext`` and are merged into every
line emitted while they are bound, so filtering on ``transfer_id``
reconstructs every attempt and rollback of one transfer.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "attach_file_handler",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

_LOGGER_PREFIX = "transfer_kernel"

# ---------------------------------------------------------------------------
# Context propagation
# ---------------------------------------------------------------------------

_context: ContextVar[Mapping[str, str]] = ContextVar("transfer_log_context", default={})


class LogContext:
    """
    Request-scoped log fields, isolated per thread and per asyncio task.

    Only the names in ``FIELDS`` are carried; anything else passed to
    ``set`` or ``bind`` is ignored.
    """

    FIELDS: frozenset[str] = frozenset({"correlation_id", "transfer_id", "session_id"})

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Update the given fields.  None leaves a field unchanged."""
        _context.set(cls._merged(fields))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_context.get())

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block, then restore."""
        token = _context.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _context.reset(token)

    @classmethod
    def _merged(cls, fields: Mapping[str, str | None]) -> dict[str, str]:
        merged = dict(_context.get())
        merged.update(
            (name, value)
            for name, value in fields.items()
            if name in cls.FIELDS and value is not None
        )
        return merged


# ---------------------------------------------------------------------------
# JSON Formatter
# ---------------------------------------------------------------------------

# Attributes every LogRecord has; anything else on a record came from extra=.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, BaseException):
        return f"{type(obj).__name__}: {obj}"
    # Decimal, UUID and anything else: str() is the readable form.
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    """Flatten an exception's code and public attributes into exc_* keys."""
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if not name.startswith("_") and name not in ("args", "code"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per record.

    Keys: ``ts`` (UTC ISO-8601), ``level``, ``logger``, ``message``, the
    bound LogContext fields, every ``extra=`` field, and for records with
    exc_info the ``exc_*`` fields plus ``traceback``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for name, value in vars(record).items():
            if name not in _RESERVED_ATTRS:
                payload.setdefault(name, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Logger factory and handlers
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the transfer_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Install one JSON handler on the transfer_kernel logger.

    Only the first call after import (or after ``reset_logging()``) has
    any effect.  Writes to stderr unless a stream or handler is given.
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root = logging.getLogger(_LOGGER_PREFIX)
    root.setLevel(level)
    root.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    root.addHandler(h)


class _FlushingFileHandler(logging.FileHandler):
    """Flushes after every record so a tailing reader sees retries as they happen."""

    def emit(self, record: logging.LogRecord) -> None:
        super().emit(record)
        self.flush()


def attach_file_handler(path: Path, level: int = logging.DEBUG) -> logging.Handler:
    """
    Append JSON lines for the whole namespace to ``path``.

    Creates missing parent directories.  The caller owns the returned
    handler and must remove and close it.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = _FlushingFileHandler(str(path), mode="a")
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger(_LOGGER_PREFIX)
    root.addHandler(handler)
    if root.level == logging.NOTSET or root.level > level:
        root.setLevel(level)
    return handler


def reset_logging() -> None:
    """Reset logging configuration. FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    root = logging.getLogger(_LOGGER_PREFIX)
    root.handlers.clear()
    root.setLevel(logging.WARNING)
