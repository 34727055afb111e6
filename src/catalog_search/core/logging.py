"""
Structured logging configuration using structlog.

Development gets a colored console renderer, production gets JSON.

Usage:
    from catalog_search.core.logging import configure_logging_from_settings, get_logger

    configure_logging_from_settings(get_settings())

    logger = get_logger(__name__)
    logger.info("Search executed", total=42, page=1)
    logger.error("Search backend call failed", error=str(e), index="products")
"""

import logging
import sys
from typing import TYPE_CHECKING, Any, Optional

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from catalog_search.config.settings import Settings


# Client libraries that log every HTTP request at INFO
TRANSPORT_LOGGERS = ("elasticsearch", "elastic_transport")


def configure_logging(
    json_logs: bool = False,
    log_level: str = "INFO",
    include_timestamp: bool = True,
    colors: bool = True,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        json_logs: If True, output JSON format (for production).
                   If False, output console format (for development).
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_timestamp: Whether to include timestamp in logs
        colors: Colorize console output (ignored for JSON)
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(
            colors=colors,
            exception_formatter=structlog.dev.plain_traceback,
        ))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging_from_settings(settings: "Settings") -> None:
    """
    Configure logging from application settings.

    Production always logs JSON; debug mode lowers the level to DEBUG;
    colors are only used in development.
    """
    configure_logging(
        json_logs=settings.json_logs or settings.is_production,
        log_level="DEBUG" if settings.debug else settings.log_level,
        colors=settings.is_development,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """
    Bind context variables to all subsequent logs in the current context.

    Usage:
        bind_context(search_mode="bulk")
        logger.info("Search executed")  # includes search_mode
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Unbind specific context variables."""
    structlog.contextvars.unbind_contextvars(*keys)
