"""Structured logging for chatmemo.

Uses structlog routed through the standard library so that messages from
SQLAlchemy and other libraries share the same formatting.

Usage:
    from chatmemo.logging import setup_logging, get_logger

    setup_logging("INFO")
    log = get_logger("chatmemo.repository")
    log.info("conversation_saved", conversation_id="abc123", message_count=12)
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import EventDict, Processor


def _add_log_level(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add log level to event dict."""
    event_dict["level"] = method_name.upper()
    return event_dict


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure structlog with JSON (or console) rendering.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Render JSON lines when True, human-readable output otherwise
    """
    shared_processors: list[Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    renderer: Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    # Logs go to stderr so CLI output on stdout stays machine-readable
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    # SQLAlchemy engine logging is only useful when debugging queries
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level.upper() == "DEBUG" else logging.WARNING
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger with optional name.

    Args:
        name: Optional logger name (e.g., 'chatmemo.search')

    Returns:
        Bound structlog logger instance
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


# --- Audit Event Functions ---
# Typed interfaces for store audit events


def log_conversation_saved(
    logger: structlog.stdlib.BoundLogger,
    conversation_id: str,
    message_count: int,
    indexed_count: int,
) -> None:
    """Log a committed conversation save.

    Args:
        logger: Logger instance
        conversation_id: Conversation identifier
        message_count: Number of messages written in this save
        indexed_count: Number of messages that received a new index entry
    """
    logger.info(
        "conversation_saved",
        conversation_id=conversation_id,
        message_count=message_count,
        indexed_count=indexed_count,
    )


def log_search_failed(
    logger: structlog.stdlib.BoundLogger,
    keyword: str,
    error: str,
) -> None:
    """Log a search that failed and degraded to an empty result.

    Args:
        logger: Logger instance
        keyword: Search keyword (truncated to keep logs small)
        error: Error message
    """
    logger.error(
        "search_failed",
        keyword=keyword[:50],
        error=error,
    )


def log_reindex_completed(
    logger: structlog.stdlib.BoundLogger,
    total: int,
    indexed: int,
    skipped: int,
) -> None:
    """Log the end of a full reindex.

    Args:
        logger: Logger instance
        total: Messages found in storage
        indexed: Messages that received an index entry
        skipped: Messages skipped because tokenization failed
    """
    logger.info(
        "reindex_completed",
        total=total,
        indexed=indexed,
        skipped=skipped,
    )
