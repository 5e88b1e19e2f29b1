"""Logging utilities for mediarelay modules."""

import logging
import re


LOGGER_NAMES = (
    'mediarelay',
    'mediarelay.upload',
    'mediarelay.upload.chunk',
    'mediarelay.upload.file',
    'mediarelay.upload.session',
    'mediarelay.upload.engine',
    'mediarelay.upload.recovery',
    'mediarelay.upload.form',
    'mediarelay.source',
    'mediarelay.guard',
)

_BOT_TOKEN_RE = re.compile(r'/bot[^/]+/')


def get_logger(name: str) -> logging.Logger:
    """Get a logger that automatically inherits from root logger.

    This ensures that loggers work with basicConfig() without needing
    explicit setup_logging() calls. The logger will:
    - Propagate to root logger (default behavior)
    - Only set a default level if root logger has no handlers

    Args:
        name: Logger name (one of LOGGER_NAMES, or __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True

    # Only set default level if root logger has no handlers
    # (i.e., basicConfig hasn't been called yet)
    root_logger = logging.getLogger()
    if not root_logger.handlers and logger.level == logging.NOTSET:
        logger.setLevel(logging.WARNING)

    return logger


def mask_url(url: str) -> str:
    """Hide the bot token in relay file URLs before they reach a log line."""
    return _BOT_TOKEN_RE.sub('/bot***/', url)
