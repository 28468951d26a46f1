"""
structlog configuration.

Logs always go to stderr: in stdio mode stdout carries protocol messages and
anything else written there corrupts the stream.
"""

import logging
import sys
from typing import TextIO

import structlog

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(
    level: str = "info",
    json_output: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for the whole process.

    Args:
        level: One of the configuration log levels (trace, debug, info, warn, error)
        json_output: Render JSON lines instead of the human console format
        stream: Output stream, stderr by default
    """
    output = stream or sys.stderr

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(colors=output.isatty())
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVELS[level]),
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )
