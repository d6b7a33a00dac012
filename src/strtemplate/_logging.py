"""Logging utilities for strtemplate.

This module provides a standalone structlog logger factory. Loggers are
self-contained and never modify global structlog configuration, so an
application embedding the engine keeps full control of its own logging.
"""

import logging
import sys
from os import getenv
from typing import TYPE_CHECKING, Literal, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

LogFormatType = Literal["json", "text"]

_DEFAULT_LEVEL = logging.WARNING


def _get_log_level() -> int:
    """Get the log level from environment variables.

    Checks STRTEMPLATE_DEBUG first (sets DEBUG if present), then
    STRTEMPLATE_LOG_LEVEL. Defaults to WARNING if neither is set.

    Returns:
        The logging level as an integer.
    """
    if getenv("STRTEMPLATE_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(
        getenv("STRTEMPLATE_LOG_LEVEL", "warning").upper(), _DEFAULT_LEVEL
    )


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Convert a log level string to a logging level integer.

    Args:
        level: Log level string (debug, info, warning, error).
        respect_env: If True, STRTEMPLATE_DEBUG overrides to DEBUG level.

    Returns:
        The logging level as an integer.
    """
    if respect_env and getenv("STRTEMPLATE_DEBUG", None):
        return logging.DEBUG

    log_levels = logging.getLevelNamesMapping()
    return log_levels.get(level.upper(), _DEFAULT_LEVEL)


def create_logger(
    level: str | None = None,
    *,
    log_format: LogFormatType = "text",
    stream: TextIO | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create a standalone structlog logger for engine diagnostics.

    The log level is determined by (in order of precedence):
    1. STRTEMPLATE_DEBUG environment variable (if set, enables DEBUG level)
    2. The `level` parameter (if provided)
    3. STRTEMPLATE_LOG_LEVEL environment variable
    4. Default: WARNING

    Args:
        level: Optional log level string (debug, info, warning, error).
        log_format: Output format, either "json" or "text".
        stream: Text stream to write to. Defaults to stderr.

    Returns:
        A configured FilteringBoundLogger instance.
    """
    effective_level = (
        _log_level_from_string(level, respect_env=True)
        if level is not None
        else _get_log_level()
    )

    processors: list[structlog.typing.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        processors.append(structlog.processors.dict_tracebacks)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    logger_factory = structlog.PrintLoggerFactory(
        file=stream if stream is not None else sys.stderr
    )

    return cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            logger_factory(),
            processors=processors,
            wrapper_class=structlog.make_filtering_bound_logger(effective_level),
            context_class=dict,
        ),
    )


def get_logger(name: str) -> "FilteringBoundLogger":  # noqa: UP037
    """Return a logger bound to a component name."""
    return create_logger().bind(component=name)
