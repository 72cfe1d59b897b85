"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

_LOGGING_CONFIGURED = False

_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"

# Structured fields the lifecycle engine attaches through ``extra=``.
EVENT_FIELDS = ("stage", "hook", "outcome")


class StageEventFormatter(logging.Formatter):
    """Appends ``key=value`` pairs for any lifecycle event fields on a record."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = [
            f"{key}={getattr(record, key)}"
            for key in EVENT_FIELDS
            if getattr(record, key, None) is not None
        ]
        if fields:
            message = f"{message} [{' '.join(fields)}]"
        return message


def get_logger(name: Optional[str] = None) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        handler = logging.StreamHandler()
        handler.setFormatter(StageEventFormatter(_FORMAT))
        logging.basicConfig(level=logging.INFO, handlers=[handler])
        _LOGGING_CONFIGURED = True
    return logging.getLogger(name)


def set_verbose(verbose: bool) -> None:
    """Switch the root logger between INFO and DEBUG."""
    get_logger()
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.INFO)
