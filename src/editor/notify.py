"""User-facing notifications (the admin panel's toasts)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Level(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


class Notification(BaseModel):
    level: Level
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))


_LOG_LEVELS = {
    Level.SUCCESS: logging.INFO,
    Level.INFO: logging.INFO,
    Level.ERROR: logging.WARNING,
}


class Notifier:
    """Records notifications, logs them, and forwards them to an optional sink."""

    def __init__(self, sink: Callable[[Notification], None] | None = None) -> None:
        self._sink = sink
        self.history: list[Notification] = []

    @property
    def last(self) -> Notification | None:
        return self.history[-1] if self.history else None

    def success(self, message: str) -> None:
        self._emit(Level.SUCCESS, message)

    def info(self, message: str) -> None:
        self._emit(Level.INFO, message)

    def error(self, message: str) -> None:
        self._emit(Level.ERROR, message)

    def _emit(self, level: Level, message: str) -> None:
        note = Notification(level=level, message=message)
        self.history.append(note)
        logger.log(_LOG_LEVELS[level], message)
        if self._sink is not None:
            self._sink(note)
