import logging
import sys
from typing import Optional

from pythonjsonlogger.jsonlogger import JsonFormatter

from leavetime.core.config import get_settings

# Chatty third-party loggers kept at WARNING unless DEBUG is on
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler")


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure root logging: JSON lines on stdout in production, plain text
    when LOG_FORMAT is anything else.

    Args:
        level: Overrides LOG_LEVEL from settings
    """
    settings = get_settings()
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper()))

    # Replace handlers so repeated app creation does not duplicate output
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    if settings.LOG_FORMAT == "json":
        handler.setFormatter(JsonFormatter(
            fmt='%(asctime)s %(name)s %(levelname)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            rename_fields={"levelname": "level", "name": "logger"},
            static_fields={"service": "leavetime-backend"}
        ))
    else:
        handler.setFormatter(logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if settings.DEBUG else logging.WARNING)

    return root
