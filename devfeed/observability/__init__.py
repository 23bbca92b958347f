"""Observability module for logging."""

from devfeed.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
    redact_url_fields,
    run_context,
)


__all__ = [
    "bind_run_context",
    "clear_run_context",
    "configure_logging",
    "redact_url_fields",
    "run_context",
]
