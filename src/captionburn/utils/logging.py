from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are too chatty at INFO for a render service.
_QUIET_LOGGERS = ("multipart", "python_multipart")


def _level(name: str, fallback: int = logging.INFO) -> int:
    return getattr(logging, str(name).upper(), fallback)


def configure_logging(level: str = "INFO") -> None:
    """Route log records to stderr so stdout stays clean for `captionburn export`."""
    logging.basicConfig(level=_level(level), format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("captionburn").setLevel(_level(level))
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if level:
        logger.setLevel(_level(level, logger.level))
    return logger
