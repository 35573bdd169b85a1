"""Logging initialization"""

import logging
import sys
from typing import Optional

from config import settings


_configured = False


class LabeledFormatter(logging.Formatter):
    """Prefix messages with a short level label and the logger name"""

    LEVEL_LABELS = {
        logging.DEBUG: "DEBUG",
        logging.INFO: "INFO",
        logging.WARNING: "WARN",
        logging.ERROR: "ERROR",
        logging.CRITICAL: "CRITICAL",
    }

    def format(self, record: logging.LogRecord) -> str:
        label = self.LEVEL_LABELS.get(record.levelno, record.levelname)
        message = f"{label} {record.name}: {record.getMessage()}"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)
        return message


def setup_logging(level: Optional[str] = None) -> None:
    """Configure the root handler once; later calls only adjust the level"""
    global _configured

    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(LabeledFormatter())
    root.addHandler(handler)
    _configured = True
