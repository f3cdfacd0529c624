# src/pgshape/config/logging.py
from __future__ import annotations

import logging
import sys
from typing import Optional

ROOT_LOGGER = "pgshape"


def configure_logging(level: str = "INFO", logger_name: Optional[str] = None) -> logging.Logger:
    """
    Minimal logging config for scripts and applications embedding pgshape.

    The library itself never calls this; it only logs through get_logger().
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
    )

    return logging.getLogger(logger_name or ROOT_LOGGER)


def get_logger(name: str) -> logging.Logger:
    # Child of the package logger, e.g. "pgshape.query"
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
