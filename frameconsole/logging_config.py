"""
Logging setup for the console service.

Console modules log under the "frameconsole" namespace. Uvicorn's access
log keeps its own one-line format, minus requests to quiet paths such as
the health probe that load balancers hit every few seconds.
"""

import logging
from typing import Any, Dict, Iterable

QUIET_PATHS = ("/health",)


class QuietPathFilter(logging.Filter):
    """Drop access log records for requests to quiet paths."""

    def __init__(self, paths: Iterable[str] = QUIET_PATHS):
        super().__init__()
        self.paths = frozenset(paths)

    def filter(self, record: logging.LogRecord) -> bool:
        # uvicorn logs access as (client, method, path, http_version, status)
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3:
            path = str(args[2]).split("?", 1)[0]
            return path not in self.paths
        return True


def get_logging_config(level: str = "INFO", access_level: str = "INFO") -> Dict[str, Any]:
    """
    Build a dictConfig for the service.

    Args:
        level: Level for console modules and the root logger
        access_level: Level for uvicorn's request log
    """
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "quiet_paths": {"()": QuietPathFilter},
        },
        "formatters": {
            "console": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
            "access": {"format": "%(message)s"},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console",
                "stream": "ext://sys.stdout",
            },
            "access": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "stream": "ext://sys.stdout",
                "filters": ["quiet_paths"],
            },
        },
        "loggers": {
            "frameconsole": {"handlers": ["console"], "level": level, "propagate": False},
            "uvicorn.access": {
                "handlers": ["access"],
                "level": access_level.upper(),
                "propagate": False,
            },
        },
        "root": {"level": level, "handlers": ["console"]},
    }
