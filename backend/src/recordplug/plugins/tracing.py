"""Trace sink backed by the standard logging module."""

import logging
import threading
from typing import Any

logger = logging.getLogger("recordplug.trace")


class LoggingTracingService:
    """TracingService that logs each line and keeps it for later inspection.

    ``trace`` formats with ``str.format`` when arguments are given, the way
    the platform's own trace sink does.
    """

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self._lines: list[str] = []
        self._lock = threading.Lock()

    def trace(self, format: str, *args: Any) -> None:
        line = format.format(*args) if args else format
        with self._lock:
            self._lines.append(line)
        logger.log(self.level, line)

    @property
    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)
