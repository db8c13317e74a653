"""
Structured logging setup.

Emits JSON lines that log collectors (ELK, Loki) can ingest, or plain text
for interactive use. Extras passed via ``extra=`` become JSON fields.
"""

import logging
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

PACKAGE_LOGGER = "jobrunner"


class CustomJsonFormatter(JsonFormatter):
    """JSON log formatter"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['timestamp'] = self.formatTime(record)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name

        if 'message' not in log_record and record.getMessage():
            log_record['message'] = record.getMessage()


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the ``jobrunner`` logger.

    Args:
        level: log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: emit JSON lines instead of plain text
        log_file: optional file to write to in addition to stderr

    Returns:
        logging.Logger: the configured package logger
    """
    if json_format:
        formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')
    else:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logger = logging.getLogger(PACKAGE_LOGGER)
    # Calling again replaces our handlers instead of stacking them
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(getattr(logging, level.upper()))
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    return logger
