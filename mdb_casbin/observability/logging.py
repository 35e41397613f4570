"""
Contextual logging utilities for MDB_CASBIN.

Log records emitted through get_logger() carry the current correlation ID
and store context (collection, namespace) in their ``extra`` fields.
"""

import contextvars
import logging
import uuid
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

_store_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "store_context", default=None
)


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set a correlation ID in the current context.

    Args:
        correlation_id: Optional correlation ID (generates new one if None)

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_store_context(**kwargs: Any) -> None:
    """
    Set store context for logging.

    Args:
        **kwargs: Context fields (collection, namespace, tenant, etc.)
    """
    _store_context.set(dict(kwargs))


def clear_store_context() -> None:
    _store_context.set(None)


def get_logging_context() -> dict[str, Any]:
    """Get the current logging context (correlation ID and store context)."""
    context: dict[str, Any] = {}

    correlation_id = get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id

    store_context = _store_context.get()
    if store_context:
        context.update(store_context)

    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically adds context to log records.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = get_logging_context()

        extra = kwargs.get("extra", {})
        if extra:
            context.update(extra)

        kwargs["extra"] = context
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """
    Get a contextual logger that automatically adds correlation ID and context.

    Args:
        name: Logger name (typically __name__)
    """
    return ContextualLoggerAdapter(logging.getLogger(name), {})
