"""Structured logging configuration using structlog."""

import logging
import sys

import structlog
from structlog import testing

from oscal_workbench.core.config import get_settings


def setup_logging() -> None:
    """Configure structured logging for the application."""
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=settings.log_level.upper(),
    )

    # Configure structlog
    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            # Drop events below the configured stdlib level
            structlog.stdlib.filter_by_level,
            # Add log level to event dict
            structlog.stdlib.add_log_level,
            # Add logger name to event dict
            structlog.stdlib.add_logger_name,
            # Add timestamp
            structlog.processors.TimeStamper(fmt="iso"),
            # Perform %-style string formatting
            structlog.stdlib.PositionalArgumentsFormatter(),
            # Add stack info if available
            structlog.processors.StackInfoRenderer(),
            # Add exception info if available
            structlog.processors.format_exc_info,
            # Render the final event dict
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def configure_test_logging() -> testing.LogCapture:
    """Configure logging for testing and return the capturing processor."""
    capture = testing.LogCapture()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            capture,
        ],
        cache_logger_on_first_use=False,
    )
    return capture
