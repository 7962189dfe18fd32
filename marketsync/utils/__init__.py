"""Shared utilities"""

from .logger import MARKETPLACE_LOGGER, get_logger, log_with_context, redact

__all__ = [
    "MARKETPLACE_LOGGER",
    "get_logger",
    "log_with_context",
    "redact",
]
