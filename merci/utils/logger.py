"""
Logging configuration for Merci.

A single ``merci`` logger writes to stdout; level comes from LOG_LEVEL.
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("merci")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    console_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.addHandler(console_handler)

logger.propagate = False


def set_level(level: str):
    level = (level or "INFO").upper()
    logger.setLevel(level)
    for h in logger.handlers:
        h.setLevel(level)


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name, appended to 'merci' (e.g. 'merci.checkout')
    """
    if name:
        return logging.getLogger(f"merci.{name}")
    return logger
