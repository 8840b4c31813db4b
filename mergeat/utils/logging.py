import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

EVENTS_LEVEL_NUM = 38
EVENTS_LOGGER_NAME = 'event'
DEFAULT_LOG_BACKUP_COUNT = 10
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Setup logging configuration."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    logging.addLevelName(EVENTS_LEVEL_NUM, 'EVENT')


def setup_events_logger(full_path: str, events_retention_size: int) -> logging.Logger:
    """Route schedule lifecycle events to a rotating `events.log` under full_path."""
    logging.addLevelName(EVENTS_LEVEL_NUM, 'EVENT')

    logger = logging.getLogger(EVENTS_LOGGER_NAME)
    logger.setLevel(EVENTS_LEVEL_NUM)

    formatter = logging.Formatter(
        '%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    os.makedirs(full_path, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(full_path, 'events.log'),
        maxBytes=events_retention_size,
        backupCount=DEFAULT_LOG_BACKUP_COUNT,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(EVENTS_LEVEL_NUM)
    logger.addHandler(file_handler)

    return logger


def log_event(action: str, repository: str, pr_number: int, detail: str = '') -> None:
    """Record one schedule lifecycle event (scheduled, cancelled, merged, ...)."""
    message = f'{action.upper():<10} | {repository}#{pr_number}'
    if detail:
        message += f' | {detail}'
    logging.getLogger(EVENTS_LOGGER_NAME).log(EVENTS_LEVEL_NUM, message)
