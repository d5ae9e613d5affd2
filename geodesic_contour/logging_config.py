"""
Logging for segmentation runs.

Every module logs to a child of the 'geodesic_contour' logger. Stage
summaries (edge potential range, terminal status of an evolution) are INFO;
per-iteration RMS change, time step and band size are DEBUG. A log file
keeps the per-iteration trace even when the console only shows summaries.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "geodesic_contour"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    file_level: int = logging.DEBUG
) -> logging.Logger:
    """
    Attach console and optional file handlers to the package logger.

    Args:
        level: Console level (logging.DEBUG also shows every iteration)
        log_file: Optional path of a log file, overwritten on each call
        file_level: Level of the file handler (default: DEBUG, so the
                    iteration trace of an evolution is kept)

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(min(level, file_level) if log_file else level)

    # Calling again replaces the handlers of the previous call
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging to console at %s%s", logging.getLevelName(level),
                 f" and to {log_file} at {logging.getLevelName(file_level)}" if log_file else "")
    return logger
