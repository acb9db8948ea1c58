"""
JSON event logging for planner writes.

Completion toggles, rejected reparents and reference cleanups are logged as
one JSON object per line, keyed by the ids they touched, so the history of a
single task can be pulled out of the log with a grep.
"""

import json
import logging
import os
import sys

from app.utils.timezones import utc_now

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


class StructuredLogger:
    """Writes planner events as JSON lines under a named stdlib logger."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

        # one stdout handler per component, however often it is looked up
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(handler)

    def _emit(self, level: int, event: str, fields: dict):
        if not self.logger.isEnabledFor(level):
            return
        entry = {
            "timestamp": utc_now().isoformat(),
            "level": logging.getLevelName(level),
            "component": self.logger.name,
            "event": event,
        }
        entry.update(fields)
        self.logger.log(level, json.dumps(entry, default=str))

    def info(self, event: str, **fields):
        """A write that went through, e.g. a completion toggle or a delete cleanup."""
        self._emit(logging.INFO, event, fields)

    def warning(self, event: str, **fields):
        """A write that was refused, e.g. a reparent that would create a cycle."""
        self._emit(logging.WARNING, event, fields)


def get_logger(component: str) -> StructuredLogger:
    return StructuredLogger(component)
