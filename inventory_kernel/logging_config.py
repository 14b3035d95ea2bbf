"""
Structured JSON logging for the inventory kernel.

Every record under the ``inventory_kernel`` logger is rendered as one JSON
object per line: timestamp, level, logger, message, the request-scoped
fields held by ``LogContext``, then whatever the call site passed as
``extra``.  Kernel errors logged with ``exc_info`` also expose their code
and structured attributes (``exc_requested``, ``exc_available``, ...), so a
rejected reservation is searchable without parsing the traceback.

Usage:
    logger = get_logger("services.ledger")
    with LogContext.bind(sku="SKU-1", order_id="ORD-1"):
        logger.info("inventory_reserved", extra={"delta": 5})
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
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from typing import Any

_LOGGER_PREFIX = "inventory_kernel"

# Request-scoped fields, in output order
CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "order_id",
    "sku",
    "bin_location",
    "transaction_id",
)

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"inventory_log_{name}", default=None)
    for name in CONTEXT_FIELDS
}


class LogContext:
    """
    Per-thread / per-task log fields (contextvars, so async-safe too).

    Known fields: correlation_id, actor_id, order_id, sku, bin_location,
    transaction_id.  Unknown names raise TypeError.
    """

    @staticmethod
    def _var(name: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT_VARS[name]
        except KeyError:
            raise TypeError(f"Unknown log context field: {name!r}") from None

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set the given fields; None leaves a field as it is."""
        for name, value in fields.items():
            var = cls._var(name)
            if value is not None:
                var.set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = [
            (LogContext._var(name), LogContext._var(name).set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def _to_json(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for attr, value in vars(exc).items():
        if attr != "code" and not attr.startswith("_"):
            fields[f"exc_{attr}"] = value
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

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key in payload:
                continue
            payload[key] = value

        exc = record.exc_info[1] if record.exc_info else None
        if exc is not None:
            payload.update(_error_fields(exc))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger named ``inventory_kernel.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_setup_lock = threading.Lock()
_installed_handler: logging.Handler | None = None


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one structured handler to the ``inventory_kernel`` logger.

    Only the first call has any effect until ``reset_logging()``.

    Args:
        level: Minimum level for the kernel's loggers.
        stream: Where the default StreamHandler writes (stderr if None).
        handler: Use this handler instead of a StreamHandler.
    """
    global _installed_handler
    with _setup_lock:
        if _installed_handler is not None:
            return
        target = handler or logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter())

        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.setLevel(level)
        kernel_logger.propagate = False
        kernel_logger.addHandler(target)
        _installed_handler = target


def reset_logging() -> None:
    """Undo configure_logging(). Tests only."""
    global _installed_handler
    with _setup_lock:
        kernel_logger = logging.getLogger(_LOGGER_PREFIX)
        kernel_logger.handlers.clear()
        kernel_logger.setLevel(logging.WARNING)
        kernel_logger.propagate = True
        _installed_handler = None
