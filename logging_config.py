"""Logging setup shared by the CLI and library callers."""

import logging
import sys

from config import settings

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s"


def setup_logging(level: str = None, stream=None) -> None:
    """Configure the root logger with a single console handler.

    Safe to call more than once: existing root handlers are replaced.

    Args:
        level: Level name; defaults to settings.log_level
        stream: Output stream; defaults to sys.stderr
    """
    level_name = (level or settings.log_level).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger; configuration is left to setup_logging()."""
    return logging.getLogger(name)
