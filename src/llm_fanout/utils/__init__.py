"""Shared utility functions.

This subpackage provides common utility functions used across
the application.

Key modules:
    - paths: Path safety and file name utilities
    - logging: Logging configuration and secret masking
    - protocols: Protocol definitions for dependency injection
    - audit: JSON lines audit logger
"""

from .paths import ensure_within, sanitize_filename
from .logging import configure_logging, get_logger, sanitize_text
from .protocols import (
    Client,
    ResultWriter,
    ProgressSink,
    AuditSink,
    PromptBuilder,
)

__all__ = [
    # paths
    "ensure_within",
    "sanitize_filename",
    # logging
    "configure_logging",
    "get_logger",
    "sanitize_text",
    # protocols
    "Client",
    "ResultWriter",
    "ProgressSink",
    "AuditSink",
    "PromptBuilder",
]
