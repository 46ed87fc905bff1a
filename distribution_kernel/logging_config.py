"""
Structured JSON logging for distribution runs.

Every record under the ``distribution`` logger namespace is rendered as one
JSON object per line. Run-scoped fields (run id, ledger path, current
recipient, current receipt) are attached automatically from ``LogContext``
so individual call sites only pass what is specific to the event.

Usage:
    configure_logging(level="INFO")
    logger = get_logger("services.ledger_store")
    with LogContext.bind(run_id=run_id):
        logger.info("ledger_loaded", extra={"record_count": 3})
"""

from __future__ import annotations

__all__ = [
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
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
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

ROOT_LOGGER_NAME = "distribution"

CONTEXT_FIELDS = ("run_id", "ledger_path", "recipient", "receipt")

_context: ContextVar[Mapping[str, str]] = ContextVar("distribution_log_context", default={})


class LogContext:
    """Run-scoped fields merged into every log record."""

    @staticmethod
    def _check(fields: Mapping[str, Any]) -> None:
        unknown = set(fields) - set(CONTEXT_FIELDS)
        if unknown:
            raise TypeError(f"unknown log context field(s): {', '.join(sorted(unknown))}")

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Update context fields. ``None`` values leave a field unchanged."""
        cls._check(fields)
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        _context.set(merged)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        """Current context fields, in declaration order."""
        current = _context.get()
        return {name: current[name] for name in CONTEXT_FIELDS if name in current}

    @classmethod
    def clear(cls) -> None:
        _context.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type[LogContext]]:
        """Set fields for the duration of a ``with`` block, then restore."""
        cls._check(fields)
        merged = dict(_context.get())
        merged.update({k: v for k, v in fields.items() if v is not None})
        token = _context.set(merged)
        try:
            yield cls
        finally:
            _context.reset(token)


# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID, Path)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return repr(value)


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS:
                payload.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(self._exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # DistributionError subclasses keep their data as instance attributes
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger ``distribution.<name>``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


_configure_lock = threading.Lock()
_configured = False


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``distribution`` logger.

    Only the first call has an effect until ``reset_logging()``. Records do
    not propagate to the root logger, so host applications keep their own
    formatting.
    """
    global _configured
    with _configure_lock:
        if _configured:
            return
        _configured = True

        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(level)
        root.propagate = False
        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())
        root.addHandler(target)


def reset_logging() -> None:
    """Undo ``configure_logging``. Tests only."""
    global _configured
    with _configure_lock:
        _configured = False
        root = logging.getLogger(ROOT_LOGGER_NAME)
        for existing in list(root.handlers):
            root.removeHandler(existing)
        root.setLevel(logging.WARNING)
        root.propagate = True
