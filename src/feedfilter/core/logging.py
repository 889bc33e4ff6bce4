"""Structured logging configuration for the feed filter.

Uses structlog for JSON-formatted logs. Supports correlation IDs
(scan_pass_id) via contextvars for tracing one scan pass or status
transition through the pipeline.

Usage:
    from feedfilter.core.logging import get_logger, set_correlation_id

    logger = get_logger(__name__)

    # At the start of a scan pass:
    set_correlation_id(str(uuid.uuid4()))

    # Log with automatic correlation ID inclusion:
    logger.info("item_suppressed", identifier="1790012345")
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, TextIO

import structlog

# Context variable for correlation ID (scan_pass_id)
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context.

    Tasks spawned after this call inherit the ID, so classification
    requests started from a scan pass log under that pass.

    Args:
        correlation_id: UUID string for this scan pass, or None to clear
    """
    _correlation_id.set(correlation_id)


def add_correlation_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor to add correlation ID to log entries."""
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["scan_pass_id"] = correlation_id
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output JSON; if False, output human-readable format
        stream: Output stream (defaults to stdout). The bridge passes stderr
            because stdout carries presentation commands.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        A structlog BoundLogger instance configured for this application
    """
    return structlog.get_logger(name)


def truncate_text(text: str, limit: int = 50) -> str:
    """Shorten item text for log lines, marking the cut with an ellipsis."""
    return text[:limit] + ("..." if len(text) > limit else "")
