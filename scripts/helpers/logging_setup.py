"""Logging for command-line scripts."""

import logging
from pathlib import Path

from config.settings import get_settings
from stratbook.utils.logging import get_logger, setup_logging

# Chatty library loggers held at WARNING unless --verbose is given
_QUIET_LOGGERS = ("sqlalchemy.engine", "alembic.runtime.migration")


def setup_script_logging(verbose: bool, logger_name: str, log_file: str | Path | None = None) -> logging.Logger:
    """Configure text logging for an interactive script and return its logger.

    Rotation limits come from ``settings.logging``; the file defaults to the
    configured one.
    """
    log_settings = get_settings().logging
    setup_logging(
        level="DEBUG" if verbose else "INFO",
        format="text",
        file=log_file if log_file is not None else log_settings.file,
        rotate_size_mb=log_settings.rotate_size_mb,
        retain_count=log_settings.retain_count,
    )
    if not verbose:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    return get_logger(logger_name)
