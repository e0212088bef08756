"""Application logger shared by every module."""

import logging
import sys
from typing import Optional

from config import settings

LOGGER_NAME = "hangulpath"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(module)s:%(lineno)d - %(message)s"


def setup_logger(level: Optional[str] = None) -> logging.Logger:
    """
    Configure and return the application logger.

    Safe to call more than once; the stream handler is only attached the
    first time.
    """
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.setLevel((level or settings.LOG_LEVEL).upper())

    if not app_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app_logger.addHandler(handler)

    return app_logger


logger = setup_logger()
