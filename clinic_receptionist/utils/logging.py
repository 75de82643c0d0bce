"""
Logging helpers.
"""

import logging

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the process."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=_FORMAT)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger."""
    return logging.getLogger(name)
