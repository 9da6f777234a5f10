"""Logging configuration for Peptide Extractor."""

import logging
import sys
from pathlib import Path

PACKAGE_LOGGER = "peptide_extractor"


def setup_logging(verbose: int = 0) -> logging.Logger:
    """
    Set up logging configuration based on verbosity level.

    Args:
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)

    Returns:
        Configured logger instance
    """
    if verbose == 0:
        log_level = logging.WARNING
    elif verbose == 1:
        log_level = logging.INFO
    else:
        log_level = logging.DEBUG

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
        handlers=[console],
    )

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)

    return logger


def add_file_handler(logger: logging.Logger, log_file: Path) -> logging.FileHandler:
    """
    Attach a timestamped run log to ``logger``.

    The file receives INFO and above regardless of console verbosity.
    """
    log_file = Path(log_file)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and Path(handler.baseFilename) == log_file.resolve():
            return handler

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(asctime)s\t%(levelname)s\t%(message)s"))
    logger.addHandler(handler)
    if logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)
    return handler

