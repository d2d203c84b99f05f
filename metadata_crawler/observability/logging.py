"""Structured logging setup for processes that issue lookups.

The store never configures logging itself. The crawler process calls
``configure_logging`` (or ``configure_logging_from_settings``) once at
startup; store modules obtain their loggers from ``get_store_logger``.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any, TextIO

import structlog


if TYPE_CHECKING:
    from metadata_crawler.settings import LookupSettings


def configure_logging(
    level: int | str = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the application.

    Sets up structlog with JSON output format and standard processors
    for timestamps, log levels, and context binding.

    Args:
        level: Logging level as a number or name (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping()[level.upper()]

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def configure_logging_from_settings(
    settings: "LookupSettings", output: TextIO = sys.stderr
) -> None:
    """Configure logging from the ASSET_LOOKUP_LOG_* settings."""
    configure_logging(
        level=settings.log_level,
        output=output,
        json_format=settings.log_json,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Bound logger instance.
    """
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger


def get_store_logger(
    subcomponent: str, **context: Any
) -> structlog.stdlib.BoundLogger:
    """Get a logger bound to a part of the store.

    Args:
        subcomponent: Store part emitting the events (pool, executor, ...).
        **context: Extra key-value pairs bound to every event.

    Returns:
        Bound logger tagged with ``component="store"``.
    """
    return get_logger().bind(
        component="store", subcomponent=subcomponent, **context
    )


def bind_lookup_context(worker_id: str) -> None:
    """Bind the calling worker to all subsequent log messages.

    Args:
        worker_id: Identifier of the crawler worker issuing lookups.
    """
    structlog.contextvars.bind_contextvars(worker_id=worker_id)


def clear_lookup_context() -> None:
    """Clear worker context from log messages."""
    structlog.contextvars.unbind_contextvars("worker_id")
