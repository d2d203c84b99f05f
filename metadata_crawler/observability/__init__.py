"""Observability module for structured logging."""

from metadata_crawler.observability.logging import (
    bind_lookup_context,
    clear_lookup_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    get_store_logger,
)


__all__ = [
    "bind_lookup_context",
    "clear_lookup_context",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "get_store_logger",
]
