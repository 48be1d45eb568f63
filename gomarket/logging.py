"""
Logging for the GoMarket cart.

Everything logs under the "gomarket" logger tree, e.g.
"gomarket.cart.service" for load/mutation events and
"gomarket.cart.writer" for snapshot writes and retries. The tree gets its
own stdout handler, so an embedding app that configures the root logger
keeps control of everything else.

Environment:
    LOG_LEVEL         level for the gomarket tree (default INFO)
    GOMARKET_ENV      "production" switches to the compact format

Usage:
    from gomarket.logging import get_logger
    logger = get_logger(__name__)

    logger.info("Cart loaded with 3 item(s)")
    logger.error("Failed to persist cart snapshot", exc_info=True)
"""

import logging
import os
import sys
from functools import cache

PACKAGE_LOGGER = "gomarket"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"


def _get_log_level() -> int:
    """Get log level from environment or default to INFO."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _configure_package_logger() -> None:
    """Attach a stdout handler to the gomarket logger tree, once."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)

    if package_logger.handlers:
        return

    package_logger.setLevel(_get_log_level())

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_get_log_level())

    is_production = os.environ.get("GOMARKET_ENV") == "production"
    formatter = logging.Formatter(LOG_FORMAT_SIMPLE if is_production else LOG_FORMAT)
    handler.setFormatter(formatter)

    package_logger.addHandler(handler)
    package_logger.propagate = False

    # upstash-redis talks REST through httpx, one log line per request
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


_configure_package_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """
    Get or create a logger with the given name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def _escape_log_injection(value: str) -> str:
    """Escape control characters that could forge log entries (CWE-117)."""
    return (
        value.replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )


def sanitize_id_for_logging(id_value: str | None) -> str:
    """
    Sanitize a product id for logging.

    Truncates to the first 8 characters and escapes log injection characters.

    Args:
        id_value: ID value to sanitize (can be None)

    Returns:
        Sanitized ID string or "N/A" if empty
    """
    if not id_value:
        return "N/A"
    safe_value = _escape_log_injection(str(id_value))
    return safe_value[:8] if len(safe_value) > 8 else safe_value


__all__ = [
    "PACKAGE_LOGGER",
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "get_logger",
    "sanitize_id_for_logging",
]
