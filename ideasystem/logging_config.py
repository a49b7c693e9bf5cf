"""Logging configuration."""

import sys
from logging.config import dictConfig


def setup_logging(level: str = "INFO") -> None:
    """
    Initialize application logging with a single console handler.

    Args:
        level: Log level name for the ideasystem loggers
    """
    log_level = level.upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "stream": sys.stderr,
                    "formatter": "default",
                },
            },
            "root": {"level": "WARNING", "handlers": ["console"]},
            "loggers": {
                "ideasystem": {
                    "level": log_level,
                    "handlers": ["console"],
                    "propagate": False,
                },
                "httpx": {"level": "WARNING"},
                "sqlalchemy.engine": {"level": "WARNING"},
            },
        }
    )
