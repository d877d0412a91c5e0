"""Centralized logging configuration for image derivative generation."""

import os
import sys
import logging
from typing import Optional, TextIO


def setup_logger(
    name: str = "image-derivatives",
    level: Optional[str] = None,
    format_type: str = "structured",
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Setup centralized logging with environment variable configuration.

    Args:
        name: Logger name (defaults to "image-derivatives")
        level: Log level override (defaults to env var or INFO)
        format_type: Logging format ("structured" or "simple")
        stream: Handler stream for a new logger (defaults to stdout)

    Returns:
        Configured logger instance

    Environment Variables:
        LOG_LEVEL: Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_FORMAT: Set format type ("structured" or "simple")
    """
    logger = logging.getLogger(name)

    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_level = getattr(logging, env_level, logging.INFO)

    logger.setLevel(log_level)

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler(stream or sys.stdout)

        env_format = os.getenv("LOG_FORMAT", format_type).lower()

        if env_format == "structured":
            formatter = logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)-8s | "
                "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = "image-derivatives") -> logging.Logger:
    """
    Get a logger instance with consistent configuration.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return setup_logger(name)


def configure_worker_logging() -> None:
    """
    Configure a per-thread logger for materialization workers.
    Call this at the start of a worker function.
    """
    import threading

    thread_name = threading.current_thread().name
    setup_logger(f"image-derivatives.{thread_name}")


logger = setup_logger()
