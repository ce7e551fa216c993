"""Logging utility with credential redaction."""

import logging
import os
import re
from typing import List, Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Provider keys and bearer headers that may end up in error bodies or URLs
_SECRET_PATTERN = re.compile(r"(sk-[A-Za-z0-9_\-]{8,}|Bearer\s+[A-Za-z0-9_\-\.]{8,})")


def mask_secret(value: Optional[str]) -> str:
    """
    Mask a credential for display in logs and API responses.

    Args:
        value: Secret value

    Returns:
        Masked representation, e.g. ``sk-abcde...wxyz``
    """
    if not value:
        return "Not set"
    if len(value) <= 12:
        return "***"
    return value[:8] + "..." + value[-4:]


class SecretMaskingFilter(logging.Filter):
    """Rewrites credentials found in a record's message before it is emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _SECRET_PATTERN.sub(lambda m: mask_secret(m.group(0)), message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _build_handlers(level: int, log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(SecretMaskingFilter())
    return handlers


def setup_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Every handler redacts provider keys. Calling again for a configured
    logger only changes its level.

    Args:
        name: Logger name
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    if not logger.handlers:
        for handler in _build_handlers(level, log_file):
            logger.addHandler(handler)

    return logger


# Application logger instance
app_logger: Optional[logging.Logger] = None


def init_app_logger(settings) -> logging.Logger:
    """
    Initialize the application logger from settings.

    Args:
        settings: Application settings instance

    Returns:
        Configured application logger
    """
    global app_logger
    app_logger = setup_logger("chatrelay", log_level=settings.log_level, log_file=settings.log_file)
    return app_logger


def get_app_logger() -> logging.Logger:
    """Get the application logger, creating a default one if needed."""
    if app_logger is None:
        return setup_logger("chatrelay")
    return app_logger
