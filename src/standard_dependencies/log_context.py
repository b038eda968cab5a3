"""Contextual tags for log records.

Tags set with `log_context` (and any OpenTelemetry baggage on the current
context) are copied onto every record passing through `LogContextFilter`.
Handlers carrying the filter therefore see them both in the JSON console
output and as attributes on exported OTLP log records.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from opentelemetry import baggage

_tags: ContextVar[dict[str, Any]] = ContextVar("log_tags", default={})

BAGGAGE_PREFIX = "baggage."


def get_tags() -> dict[str, Any]:
    """Get the tags of the current context as a dict."""
    return _tags.get().copy()


@contextmanager
def log_context(**tags):
    """Add tags to log records emitted for the duration of the block.

    Composes with outer contexts - inner blocks inherit and can override.

    Example:
        with log_context(order_id="o-1"):
            with log_context(attempt=2):
                logger.info("Charging card")  # Has both tags
    """
    previous = _tags.get()
    token = _tags.set({**previous, **tags})
    try:
        yield
    finally:
        _tags.reset(token)


def to_attribute_value(obj: object) -> object:
    """Convert arbitrary objects into OpenTelemetry-compatible values.

    OTEL only accepts bool, str, bytes, int and float as log attributes;
    containers are flattened into a string, anything else is ``str()``-ed.
    """
    if isinstance(obj, (bool, int, float, str, bytes)):
        return obj
    if isinstance(obj, dict):
        return ", ".join(f"{key}: {to_attribute_value(value)}" for key, value in obj.items())
    if isinstance(obj, (list, tuple, set)):
        return ", ".join(str(to_attribute_value(item)) for item in obj)
    return str(obj)


class LogContextFilter(logging.Filter):
    """Adds context tags and baggage entries to Python LogRecords."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in get_tags().items():
            if value is not None:
                setattr(record, key, to_attribute_value(value))
        for key, value in baggage.get_all().items():
            setattr(record, f"{BAGGAGE_PREFIX}{key}", to_attribute_value(value))
        return True
