"""
Core module for cross-cutting concerns (structured logging).
"""

from catalog_search.core.logging import (
    bind_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    unbind_context,
)

__all__ = [
    "bind_context",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "unbind_context",
]
