"""
Structured event reporting for pipeline components.
"""
import logging
from typing import Any, Optional


class Reporter:
    """
    Observer that receives structured pipeline events.

    Components call ``info``/``warning``/``error``/``debug`` with an event
    name and keyword fields. The base class discards everything.
    """

    def debug(self, event: str, **fields: Any) -> None:
        self.emit(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self.emit(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.emit(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self.emit(logging.ERROR, event, fields)

    def emit(self, level: int, event: str, fields: dict) -> None:
        pass


class LoggingReporter(Reporter):
    """Renders events as ``event key=value ...`` lines on a logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("pipeline")

    def emit(self, level: int, event: str, fields: dict) -> None:
        if not self.logger.isEnabledFor(level):
            return
        details = " ".join(f"{key}={value}" for key, value in fields.items())
        self.logger.log(level, f"{event} {details}".rstrip())
