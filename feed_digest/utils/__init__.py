"""
Shared utility functions.

This package contains logging helpers used across the refresh,
summary and cache layers.
"""

from .logging import (
    JsonlFormatter,
    get_logger,
    log_event,
    redact_text,
    setup_logging,
    truncate_text,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_event",
    "redact_text",
    "truncate_text",
    "JsonlFormatter",
]
