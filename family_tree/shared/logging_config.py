"""
Common logging configuration for the family tree service
"""

import logging
import os
import sys


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logger(name: str, level: str = "INFO", log_file: str = None) -> logging.Logger:
    """
    Setup a logger with the project's formatting

    Args:
        name: Logger name (typically __name__)
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to also write logs to

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Already configured
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_project_logger(module_name: str, verbose: bool = False) -> logging.Logger:
    """
    Get a stdout logger for a family tree module

    The level comes from the LOG_LEVEL environment variable unless verbose
    forces DEBUG.
    """
    level = "DEBUG" if verbose else os.environ.get('LOG_LEVEL', 'INFO')
    return setup_logger(module_name, level, log_file=None)
