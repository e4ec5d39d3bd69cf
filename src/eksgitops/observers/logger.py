# src/eksgitops/observers/logger.py
from __future__ import annotations

import logging

from .events import BaseEvent


class LoggerObserver:
    """Mirrors events into the run log file (DEBUG)."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        etype = event.__class__.__name__
        fields = ", ".join(
            f"{k}={v}" for k, v in event.dict().items() if k not in ("ts", "run_id", "env", "context")
        )
        self.logger.debug(f"[EVENT] {etype} cluster={event.context}: {fields}")
