"""
Central logging configuration for whosfree.

Quiets chatty third-party loggers while keeping whosfree's own diagnostics,
and stamps every record with the request correlation id.
"""

import logging
import os
from typing import Optional


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records for request tracing."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Imported lazily; the middleware module pulls in aiohttp
        from .api.middleware import get_request_id

        record.request_id = get_request_id()
        return True


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for whosfree.

    Args:
        debug_mode: Whether to enable debug logging for whosfree modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        WHOSFREE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        WHOSFREE_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("WHOSFREE_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("WHOSFREE_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
            )
        )
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            existing_handler.addFilter(correlation_filter)

    logger_config: dict[str, int] = {
        "aiohttp.access": logging.WARNING,
        "aiohttp.server": logging.WARNING,
        "aiohttp.web": logging.INFO,
        "aiosqlite": logging.WARNING,
        "asyncio": logging.WARNING,
        "icalendar": logging.INFO,
        "whosfree": logging.DEBUG if final_debug else logging.INFO,
    }

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for whosfree modules")
    else:
        root_logger.info("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """Map key logger names to their current level names."""
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("whosfree", "aiohttp.access", "aiosqlite", "asyncio"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
