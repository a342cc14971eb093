"""Logging utilities for gitpanel.

Contains:
- configure_logging: Configure structlog to write text or JSON lines to stderr
- get_logger: Get a bound structlog logger for a module
"""

import logging
import sys
from typing import Literal

import structlog

LogFormatType = Literal["json", "text"]

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def _log_level_from_string(level: str) -> int:
    """Convert a log level string to a logging level integer (INFO if unknown)."""
    return _LOG_LEVELS.get(level.lower(), logging.INFO)


def configure_logging(level: str = "info", fmt: LogFormatType = "text") -> None:
    """Configure structlog for the process.

    Args:
        level: Log level string (debug, info, warning, error).
        fmt: Output format, either "json" or "text".
    """
    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if fmt == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Text format: "timestamp [level] event key=value ..."
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(_log_level_from_string(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> "structlog.typing.FilteringBoundLogger":
    """Get a logger bound to a module name.

    The logger resolves the structlog configuration lazily, so module-level
    loggers pick up a later configure_logging() call.
    """
    return structlog.get_logger(module=name)
