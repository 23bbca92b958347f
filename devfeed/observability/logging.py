"""Structured logging configuration for the feed and reader pipeline."""

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any, TextIO

import structlog

from devfeed.fetch.redact import redact_url_credentials


# Event keys that may carry user-supplied URLs
URL_FIELDS = ("url", "final_url", "feed_url", "article_url", "source_feed_url")

# Standard-library loggers that are chatty at INFO
QUIET_LOGGERS = ("readability", "readability.readability", "httpx", "httpcore")


def redact_url_fields(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Structlog processor removing credentials from URL-valued fields."""
    for key in URL_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str):
            event_dict[key] = redact_url_credentials(value)
    return event_dict


def configure_logging(
    level: int = logging.INFO,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the application.

    Sets up structlog with timestamps, log levels, run context and URL
    redaction, rendered as JSON or for the console. Third-party loggers
    that go through the standard library (readability, httpx) share the
    same stream but are held at WARNING unless DEBUG is requested.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: stderr).
        json_format: Whether to use JSON format (default: True).
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_url_fields,
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

    logging.basicConfig(format="%(message)s", stream=output, level=level, force=True)
    library_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(library_level)


def bind_run_context(run_id: str, command: str | None = None) -> None:
    """Bind run context to all subsequent log messages.

    Args:
        run_id: Unique run identifier.
        command: CLI command being run, if known.
    """
    if command is None:
        structlog.contextvars.bind_contextvars(run_id=run_id)
    else:
        structlog.contextvars.bind_contextvars(run_id=run_id, command=command)


def clear_run_context() -> None:
    """Clear run context from log messages."""
    structlog.contextvars.unbind_contextvars("run_id", "command")


@contextmanager
def run_context(run_id: str, command: str | None = None) -> Iterator[None]:
    """Bind run context for the duration of a block."""
    bind_run_context(run_id, command)
    try:
        yield
    finally:
        clear_run_context()
