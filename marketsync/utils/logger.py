"""
Structured logging utilities with secret redaction.
"""

import logging
import json
from datetime import datetime
from typing import Any, Dict, Iterable

MARKETPLACE_LOGGER = "marketsync.marketplace"

REDACTED = "***"

SECRET_KEYS = frozenset({
    "access_token",
    "refresh_token",
    "api_key",
    "api_secret",
    "client_secret",
    "consumer_key",
    "consumer_secret",
    "password",
    "keystring",
    "authorization",
})


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage()
        }

        # Add extra fields if provided
        if hasattr(record, 'extra_data'):
            log_data.update(record.extra_data)

        return json.dumps(log_data, default=str)


def get_logger(name: str) -> logging.Logger:
    """
    Get configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger with JSON formatting
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        from marketsync.config import Config

        logger.setLevel(getattr(logging, Config.LOG_LEVEL, logging.INFO))

        console = logging.StreamHandler()
        console.setFormatter(JSONFormatter())
        logger.addHandler(console)

        if Config.LOG_FILE:
            file_handler = logging.FileHandler(Config.LOG_FILE)
            file_handler.setFormatter(JSONFormatter())
            logger.addHandler(file_handler)

    return logger


def redact(text: str, secrets: Iterable[str]) -> str:
    """
    Replace every secret value occurring in text.

    Args:
        text: Text that may contain secrets
        secrets: Secret values to hide (empty values are ignored)

    Returns:
        Text with each secret replaced by ***
    """
    if not text:
        return text
    # Longest first so a secret containing another is fully hidden
    for secret in sorted({s for s in secrets if s}, key=len, reverse=True):
        text = text.replace(secret, REDACTED)
    return text


def redact_mapping(data: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of data with secret-looking keys masked, recursively."""
    clean: Dict[str, Any] = {}
    for key, value in data.items():
        if str(key).lower() in SECRET_KEYS and value:
            clean[key] = REDACTED
        elif isinstance(value, dict):
            clean[key] = redact_mapping(value)
        else:
            clean[key] = value
    return clean


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context
) -> None:
    """
    Log message with structured context.

    Args:
        logger: Logger instance
        level: Log level (INFO, WARNING, ERROR)
        message: Log message
        **context: Additional context fields
    """
    log_method = getattr(logger, level.lower())
    extra = {"extra_data": redact_mapping(context)}
    log_method(message, extra=extra)
