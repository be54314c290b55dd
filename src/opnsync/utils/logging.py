from __future__ import annotations

import logging
import os
from typing import Literal

import coloredlogs  # type: ignore[import]

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

LOG_LEVELS: tuple[str, ...] = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
LOGLEVEL_ENV_VAR = "LOGLEVEL"
DEFAULT_LEVEL = "INFO"

DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

# HTTP stack loggers, only shown at DEBUG
HTTP_LOGGERS = ("urllib3", "requests")


def resolve_level(level: str | None = None) -> str:
    """Explicit ``level`` first, then ``$LOGLEVEL``, then INFO."""
    resolved = (level or os.environ.get(LOGLEVEL_ENV_VAR) or DEFAULT_LEVEL).upper()
    if resolved not in LOG_LEVELS:
        raise ValueError(
            f"Unknown log level {resolved!r}, expected one of {', '.join(LOG_LEVELS)}"
        )
    return resolved


def setup_logging(level: LogLevel | str | None = None) -> str:
    resolved = resolve_level(level)

    coloredlogs.install(
        level=resolved,
        fmt=DEFAULT_FORMAT,
        datefmt=DEFAULT_DATE_FORMAT,
    )

    http_level = logging.DEBUG if resolved == "DEBUG" else logging.WARNING
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(http_level)

    return resolved
