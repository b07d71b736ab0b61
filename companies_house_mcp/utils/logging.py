"""Structured logging setup.

Everything is written to stderr: stdout is the JSON-RPC reply channel for the
stdio server and the bridge, and any stray byte there corrupts the framing.
"""

import logging
import sys
import uuid

import structlog


def new_request_id() -> str:
    """Short id for correlating the log lines of one HTTP request."""
    return str(uuid.uuid4())[:8]


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Set up structured logging on stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Also configure standard library logging
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)
