"""
Logging utilities.

Readly modules log through ``logging.getLogger(__name__)`` and never add
handlers themselves; applications call :func:`get_logger` or configure
logging directly. The default level can be set with ``READLY_LOG_LEVEL``.
"""

import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
LOG_LEVEL_ENV = "READLY_LOG_LEVEL"


def _parse_level(level: int | str) -> int:
    if isinstance(level, int):
        return level

    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def get_logger(name: str = "readly") -> logging.Logger:
    """
    Get a logger with a stderr handler attached.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger, at the level named by READLY_LOG_LEVEL (INFO if unset)
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(_parse_level(os.environ.get(LOG_LEVEL_ENV, "INFO")))

    return logger


def set_log_level(level: int | str) -> None:
    """
    Set the log level for every Readly logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValueError: If the level name is unknown
    """
    logging.getLogger("readly").setLevel(_parse_level(level))
