"""
Logging Configuration Module

One stdout handler shared by the service, uvicorn and the HTTP client stack.
"""

import logging
import logging.config
from typing import Any

from httpstat.config import get_settings

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _console_logger(level: str) -> dict[str, Any]:
    return {"handlers": ["console"], "level": level, "propagate": False}


def build_logging_config(debug: bool) -> dict[str, Any]:
    """
    Build the dictConfig mapping

    Args:
        debug: Log the service (recorder events included) at DEBUG instead of INFO

    Returns:
        dict: Configuration for logging.config.dictConfig
    """
    level = "DEBUG" if debug else "INFO"

    loggers = {name: _console_logger("INFO") for name in UVICORN_LOGGERS}
    # httpcore logs each connection step; the recorder already reports them
    loggers["httpcore"] = _console_logger("WARNING")
    loggers["httpx"] = _console_logger("WARNING")
    loggers["httpstat"] = _console_logger(level)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": LOG_FORMAT, "datefmt": DATE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["console"], "level": level},
        "loggers": loggers,
    }


def setup_logging():
    """Configure logging from settings (DEBUG flag)"""
    settings = get_settings()
    logging.config.dictConfig(build_logging_config(settings.DEBUG))
