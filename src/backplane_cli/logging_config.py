"""
backplane-cli Logging Configuration

Configurable logging with debug mode support and secret masking.
"""

import os
import re
import logging
import sys
from pathlib import Path
from typing import Optional

from backplane_cli.info import BACKPLANE_DEBUG_ENV_NAME


# Check for debug mode
DEBUG_MODE = os.environ.get(BACKPLANE_DEBUG_ENV_NAME, "").lower() in ("1", "true", "yes")

# Key names whose values are secrets
SECRET_PATTERNS = [
    "jira-token", "pd-key", "token", "password", "secret", "api_key", "apikey",
]

# Regex patterns for common secret formats
SECRET_REGEXES = [
    r'(?<=Bearer )[A-Za-z0-9\-._~+/]+=*',  # Authorization headers
    r'sha256~[A-Za-z0-9\-_]{20,}',  # OpenShift access tokens
]

# user:password@ in proxy URLs
_URL_CREDENTIALS = re.compile(r'(?P<scheme>[a-zA-Z][a-zA-Z0-9+.\-]*://)[^/\s:@]+:[^/\s@]+@')


def mask_secrets(text: str, mask: str = "********") -> str:
    """Mask secrets in a string.

    Args:
        text: The text that may contain secrets
        mask: The string to replace secrets with

    Returns:
        Text with secrets masked
    """
    if not text:
        return text

    result = text

    # Match key="value", key=value and "key": "value"
    for pattern in SECRET_PATTERNS:
        regex = rf'({re.escape(pattern)}["\']?\s*[=:]\s*["\']?)([^"\'\s,}}]+)(["\']?)'
        result = re.sub(regex, rf'\1{mask}\3', result, flags=re.IGNORECASE)

    for regex in SECRET_REGEXES:
        result = re.sub(regex, mask, result)

    result = _URL_CREDENTIALS.sub(rf'\g<scheme>{mask}@', result)

    return result


class SecretMaskingFormatter(logging.Formatter):
    """Formatter that masks secrets in log messages."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return mask_secrets(message)


def setup_logging(
    level: Optional[int] = None,
    log_file: Optional[Path] = None,
    quiet: bool = False
) -> logging.Logger:
    """Set up logging configuration.

    Args:
        level: Logging level (default: DEBUG if BACKPLANE_DEBUG, else WARNING)
        log_file: Optional path to log file
        quiet: If True, suppress console output

    Returns:
        Configured logger
    """
    if level is None:
        level = logging.DEBUG if DEBUG_MODE else logging.WARNING

    logger = logging.getLogger("backplane_cli")
    logger.setLevel(level)

    logger.handlers.clear()

    if not quiet:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)

        if DEBUG_MODE or level <= logging.DEBUG:
            console_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        else:
            console_format = "%(levelname)s %(message)s"

        console_handler.setFormatter(SecretMaskingFormatter(console_format))
        logger.addHandler(console_handler)
    else:
        logger.addHandler(logging.NullHandler())

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_format = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d: %(message)s"
        file_handler.setFormatter(SecretMaskingFormatter(file_format))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "backplane_cli") -> logging.Logger:
    """Get a logger in the backplane-cli tree.

    Args:
        name: Logger name (will be prefixed with 'backplane_cli.')

    Returns:
        Logger instance
    """
    if not name.startswith("backplane_cli"):
        name = f"backplane_cli.{name}"

    return logging.getLogger(name)

