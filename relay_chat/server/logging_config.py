"""Logging setup for the relay; records read ``EVENT key=value ...``."""
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LOG_BACKUPS, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT, LOG_MAX_BYTES

LOGGER_NAME = "relay_chat_server"


def _rotating_handler(path: Path) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def configure_logging(level: int = logging.INFO, log_file: Path = LOG_FILE) -> logging.Logger:
    """Return the relay logger, attaching the rotating file handler on first use."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        logger.addHandler(_rotating_handler(log_file))
    return logger
