"""
Structured JSON logging for the reconciliation jobs.

Every record under the ``tanda`` logger is emitted as one JSON line.  The
executor binds the run-scoped fields (``job_name``, ``job_run_id``,
``item_key``) and the HTTP layer binds ``correlation_id``; the formatter
merges them into each line, followed by the record's ``extra`` fields.

Exceptions attached with ``exc_info`` are flattened: a ``TandaError``
contributes its ``code`` and its structured attributes as ``exc_*`` keys.
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
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from tanda_kernel.domain.values import Cents

LOGGER_NAMESPACE = "tanda"

RUN_FIELDS = ("correlation_id", "job_name", "job_run_id", "item_key")

_run_fields: ContextVar[Mapping[str, str]] = ContextVar("tanda_run_fields", default={})


class LogContext:
    """Run-scoped log fields carried across calls in one thread or task."""

    @staticmethod
    def _merged(fields: Mapping[str, str | None]) -> dict[str, str]:
        unknown = set(fields) - set(RUN_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        current = dict(_run_fields.get())
        current.update({k: v for k, v in fields.items() if v is not None})
        return current

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set fields for the rest of the current context; None is ignored."""
        _run_fields.set(cls._merged(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_run_fields.get())

    @staticmethod
    def clear() -> None:
        _run_fields.set({})

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Set fields inside a ``with`` block and restore them on exit."""
        token = _run_fields.set(cls._merged(fields))
        try:
            yield cls
        finally:
            _run_fields.reset(token)


# Attributes every LogRecord carries; anything else came from ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Cents):
        return obj.value
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (UUID, Decimal)):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for name, value in vars(exc).items():
        if name != "code" and not name.startswith("_"):
            fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: header, run fields, extras, exception."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        line.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in line
        )
        if record.exc_info and record.exc_info[1] is not None:
            line.update(_exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    """Logger under the ``tanda`` namespace, e.g. ``tanda.batch.executor``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def _is_structured(handler: logging.Handler) -> bool:
    return isinstance(handler.formatter, StructuredFormatter)


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach one JSON handler to the ``tanda`` logger.

    Calling again once a structured handler is attached does nothing.
    """
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    if any(_is_structured(h) for h in namespace.handlers):
        return

    target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    namespace.addHandler(target)
    namespace.setLevel(level)
    namespace.propagate = False


def reset_logging() -> None:
    """Detach handlers and restore defaults (tests only)."""
    namespace = logging.getLogger(LOGGER_NAMESPACE)
    for handler in list(namespace.handlers):
        namespace.removeHandler(handler)
    namespace.setLevel(logging.WARNING)
    namespace.propagate = True
