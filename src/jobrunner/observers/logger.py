# src/jobrunner/observers/logger.py
from __future__ import annotations

import logging

from .events import BaseEvent, FAILURE_EVENTS


class LoggerObserver:
    """Writes every event to a logger; failure events at WARNING."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        etype = event.__class__.__name__
        fields = ", ".join(
            f"{k}={v}" for k, v in event.dict().items() if k not in ("ts", "run_id", "context")
        )
        level = logging.WARNING if isinstance(event, FAILURE_EVENTS) else logging.INFO
        self.logger.log(level, "[EVENT] %s: %s", etype, fields)
