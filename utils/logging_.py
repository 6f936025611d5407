"""Structured logging setup for PushSession."""

import logging
import sys

from config import LOGS_DIR, LOG_LEVEL


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure structured logging."""
    logger = logging.getLogger("push-session")
    logger.setLevel(level)

    # Re-imports must not stack handlers
    if logger.handlers:
        return logger

    # Console handler
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console_fmt = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    console.setFormatter(console_fmt)
    logger.addHandler(console)

    # File handler
    if LOGS_DIR is not None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOGS_DIR / "api.log")
        file_handler.setLevel(level)
        file_handler.setFormatter(console_fmt)
        logger.addHandler(file_handler)

    return logger


logger = setup_logging(getattr(logging, LOG_LEVEL, logging.INFO))
