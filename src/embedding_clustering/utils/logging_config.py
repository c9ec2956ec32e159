"""
Logging configuration for Embedding Clustering.

Every module obtains its logger through ``get_logger(__name__)`` so that all
output lives under the ``embedding_clustering`` namespace and can be tuned
from a single place.

Usage:
    from embedding_clustering.utils.logging_config import get_logger, setup_logging

    setup_logging("DEBUG")
    logger = get_logger(__name__)
    logger.info("Clustering %d embeddings", n)
"""

import logging
import os
from typing import Optional, Union

PACKAGE_LOGGER_NAME = "embedding_clustering"

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger for *name* under the package namespace.

    Module names that already start with the package name are used as-is;
    anything else (scripts, tests) is nested below the package logger.
    """
    if name == PACKAGE_LOGGER_NAME or name.startswith(PACKAGE_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER_NAME}.{name}")


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[str] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the package logger once.

    Args:
        level: Log level name or number. Falls back to the ``LOG_LEVEL``
               environment variable, then ``INFO``.
        log_file: Optional path; when set, records are also written there.
        fmt: Format string for all handlers.

    Returns:
        The configured package logger.
    """
    global _configured

    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(level)

    if _configured:
        return package_logger

    formatter = logging.Formatter(fmt)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    package_logger.addHandler(stream_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    _configured = True
    return package_logger
