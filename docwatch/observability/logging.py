"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = False,
) -> None:
    """Configure structured logging for the watch session.

    Console rendering is the default since docwatch runs in a developer's
    terminal; JSON output is available for piping into other tools.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: False).
    """
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
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging (tornado, livereload) to the same stream
    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def bind_session_context(session_id: str, root: str) -> None:
    """Bind watch session context to all subsequent log messages.

    Args:
        session_id: Unique identifier of this process's session.
        root: Directory being watched.
    """
    structlog.contextvars.bind_contextvars(session_id=session_id, root=root)


def clear_session_context() -> None:
    """Clear session context from log messages."""
    structlog.contextvars.unbind_contextvars("session_id", "root")
