"""Logger construction for the CLI.

A single logger instance is built here and handed down through the run
context. Nothing else configures logging.
"""

import logging
import sys

LOGGER_NAME = "wreckit"


def create_logger(verbose: bool = False, quiet: bool = False, stream=None) -> logging.Logger:
    """Build the `wreckit` logger with one stream handler.

    --verbose => DEBUG, --quiet => ERROR, otherwise INFO.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    fmt = "%(levelname)s %(message)s" if verbose else "%(message)s"
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)
    return logger
