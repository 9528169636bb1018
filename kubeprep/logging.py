"""Logging configuration for the kubeprep package."""
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from kubeprep.config import Config


@contextmanager
def log_session(log_file: Union[str, Path], verbose: bool = False) -> Iterator[logging.Logger]:
    """Attach console and log-file handlers to the ``kubeprep`` logger.

    The console handler logs at INFO (DEBUG when verbose). The file handler
    always logs at DEBUG so the log file also holds every command's output.
    Both handlers are detached and closed when the block exits.

    Args:
        log_file: Path of the log file for this run
        verbose: Echo debug output, including command output, to the console

    Yields:
        The configured ``kubeprep`` logger
    """
    logger = logging.getLogger("kubeprep")
    saved_level, saved_propagate = logger.level, logger.propagate
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    formatter = logging.Formatter(Config.LOG_FORMAT, datefmt=Config.LOG_DATEFMT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else Config.LOG_LEVEL)
    console_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    handlers = (console_handler, file_handler)
    for handler in handlers:
        logger.addHandler(handler)

    # Disable debug logging for noisy libraries
    if not verbose:
        for name in Config.QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    try:
        yield logger
    finally:
        for handler in handlers:
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(saved_level)
        logger.propagate = saved_propagate
