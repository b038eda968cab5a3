"""Structured (JSON) log formatting shared by every service."""

import logging
import sys
from typing import Any, Optional

import json_logging

from standard_dependencies.log_context import LogContextFilter

# Set on records by the OpenTelemetry logging instrumentation.
_CORRELATION_FIELDS = {
    "otelTraceID": "trace_id",
    "otelSpanID": "span_id",
    "otelServiceName": "service.name",
    "otelTraceSampled": "trace_sampled",
}
_INVALID_IDS = {"0", ""}
_JSON_PRIMITIVES = (str, int, float, bool, type(None))


class JsonFormatter(json_logging.JSONLogFormatter):
    """Render a log record as a single JSON object per line.

    The line layout (``written_at``, ``msg``, ``level``, ``logger``, extras,
    ``exc_info``) is json_logging's. Trace correlation identifiers are
    emitted under ``trace_id`` and ``span_id`` when the record was created
    inside a valid span.
    """

    def _format_log_object(self, record: logging.LogRecord, request_util) -> dict:
        json_log_object = super()._format_log_object(record, request_util)

        for attribute, key in _CORRELATION_FIELDS.items():
            json_log_object.pop(attribute, None)
            value = getattr(record, attribute, None)
            if value is None or (key.endswith("_id") and value in _INVALID_IDS):
                continue
            json_log_object[key] = value

        # Not a LogRecord attribute on every interpreter json_logging knows
        json_log_object.pop("taskName", None)

        return {
            key: value if isinstance(value, _JSON_PRIMITIVES) else str(value)
            for key, value in json_log_object.items()
        }


def resolve_log_level(level: Any) -> int:
    """Translate a configured log level to ``logging`` constants.

    :param level: Level name (any case) or numeric level.
    :type level: str | int
    :return: Numeric level recognised by the ``logging`` module.
    :rtype: int
    :raises ValueError: If the configured level is invalid.
    """
    if isinstance(level, int):
        return level

    if isinstance(level, str):
        resolved_level = logging.getLevelName(level.strip().upper())
        if isinstance(resolved_level, int):
            return resolved_level

    raise ValueError(f"Invalid log level: {level!r}")


def configure_console_logging(level: Any = "INFO") -> logging.Handler:
    """Attach a JSON stdout handler to the root logger.

    :param level: Level applied to the handler and the root logger.
    :type level: str | int
    :return: The handler added, so callers can detach it again.
    :rtype: logging.Handler
    """
    log_level = resolve_log_level(level)

    handler = logging.StreamHandler(sys.stdout)  # Default is stderr
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter())
    handler.addFilter(LogContextFilter())

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)
    return handler


def get_logging_config(log_level: Optional[str] = "INFO") -> dict:
    """Returns a uvicorn ``log_config`` dict so server logs share the JSON shape.

    Only the uvicorn loggers are configured; the root logger is left for the
    telemetry setup to own.
    """
    level = (log_level or "INFO").upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "log_context": {"()": LogContextFilter},
        },
        "formatters": {
            "json": {"()": JsonFormatter},
        },
        "handlers": {
            "default": {
                "level": level,
                "formatter": "json",
                "filters": ["log_context"],
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "uvicorn": {"level": level, "handlers": ["default"], "propagate": False},
            "uvicorn.error": {"level": level},
            "uvicorn.access": {
                "level": level,
                "handlers": ["default"],
                "propagate": False,
            },
        },
    }
