"""Logging configuration for MF-Analyst."""

import logging
import sys


def setup_logger(name: str = "mf_analyst", level: str | None = None) -> logging.Logger:
    """Create and configure a logger.

    When *level* is omitted the level from settings / ``MF_ANALYST_LOG_LEVEL``
    is used.
    """
    if level is None:
        from src.config import Env
        level = Env.LOG_LEVEL

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        fmt = logging.Formatter(
            "%(asctime)s | %(name)-20s | %(levelname)-7s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    return logger
