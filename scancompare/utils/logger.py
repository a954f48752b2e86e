"""
Logging configuration for ScanCompare.

Uses structlog for structured JSON logging suitable for production.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import Processor

from scancompare.config import settings


def configure_logging(
    log_level: Optional[str] = None,
    json_format: bool = True
) -> None:
    """
    Configure structured logging for the application.
    
    Args:
        log_level: Override log level (defaults to settings.log_level)
        json_format: Whether to output JSON (True) or console format (False)
    """
    level = log_level or settings.log_level
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    
    if json_format:
        processors: list[Processor] = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True)
        ]
    
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    
    # Uvicorn and slowapi log through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )


def bind_request_context(**context: Any) -> None:
    """
    Start a fresh logging context for one request.

    Every log line emitted while handling the request carries the
    bound keys (request id, comparison id, ...).
    """
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)


def bind_comparison_context(comparison_id: str, **context: Any) -> None:
    """Tag the remaining log lines of a request with a comparison id."""
    structlog.contextvars.bind_contextvars(comparison_id=comparison_id, **context)


def get_logger(name: str = "scancompare") -> structlog.BoundLogger:
    """
    Get a structured logger instance.
    
    Args:
        name: Logger name for identification
        
    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


# Configure logging on module import (can be reconfigured later)
configure_logging(
    log_level=settings.log_level,
    json_format=not settings.debug
)

logger = get_logger()
