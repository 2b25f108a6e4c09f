"""
Centralized logging configuration for the giveaway bot
Console logging plus an optional rotating log file
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler


def setup_logging(app_name=None, log_level=None, log_file=None):
    """
    Setup logging with console and optional file handlers

    Args:
        app_name: Logger to configure (None configures the root logger, so
            every module's getLogger(__name__) inherits the handlers)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file (enables file logging)

    Returns:
        logging.Logger: Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()

    numeric_level = getattr(logging, log_level, logging.INFO)

    logger = logging.getLogger(app_name)
    logger.setLevel(numeric_level)

    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        fmt='[%(asctime)s] %(levelname)-8s [%(name)s.%(funcName)s:%(lineno)d] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        fmt='[%(asctime)s] %(levelname)-8s [%(name)s] %(message)s',
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(simple_formatter)
    logger.addHandler(console_handler)

    if log_file:
        try:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

            # 10MB max, keep 5 backups
            file_handler = RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding='utf-8'
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)

            logger.info(f"File logging enabled: {log_file}")
        except OSError as e:
            logger.error(f"Failed to setup file logging: {e}")

    return logger


def log_api_call(logger, api_name, endpoint, status_code=None, duration=None):
    """Log external API calls"""
    msg = f"API Call: {api_name} -> {endpoint}"
    if status_code:
        msg += f" [HTTP {status_code}]"
    if duration:
        msg += f" ({duration:.2f}s)"
    logger.info(msg)


def log_error(logger, error, context=None):
    """Log error with optional context"""
    if context:
        logger.error(f"{context}: {error}", exc_info=True)
    else:
        logger.error(str(error), exc_info=True)
