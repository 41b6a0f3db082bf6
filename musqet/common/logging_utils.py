"""
Logging utilities for the SDK's ``musqet`` logger tree.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(logger: logging.Logger, log_level: int) -> None:
    """
    Attach the SDK's stream handler to a logger, or re-level it.

    Every client builds its own ConfigLoader, so this runs many times per
    process: the handler is installed once and later calls only move the
    logger and that handler to the new level.

    Args:
        logger: The logger instance to configure
        log_level: The logging level to set
    """
    logger.setLevel(log_level)
    for handler in logger.handlers:
        if getattr(handler, "_musqet_handler", False):
            handler.setLevel(log_level)
            return

    handler = logging.StreamHandler()
    handler._musqet_handler = True  # type: ignore[attr-defined]
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
