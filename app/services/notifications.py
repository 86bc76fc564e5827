"""Transient, auto-expiring user feedback messages."""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)

DISPLAY_DURATION_MS = 5_000
EXIT_DURATION_MS = 500


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class NotificationPhase(str, Enum):
    VISIBLE = "visible"
    EXITING = "exiting"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class Notification:
    id: int
    title: str
    message: str
    severity: Severity
    created_at: float

    def phase(self, now: float) -> NotificationPhase:
        elapsed_ms = (now - self.created_at) * 1_000
        if elapsed_ms < DISPLAY_DURATION_MS:
            return NotificationPhase.VISIBLE
        if elapsed_ms < DISPLAY_DURATION_MS + EXIT_DURATION_MS:
            return NotificationPhase.EXITING
        return NotificationPhase.REMOVED

    def to_payload(self, now: float) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.severity.value,
            "phase": self.phase(now).value,
        }


class NotificationService:
    """Bottom-stacked list of notifications, oldest first.

    Expiry is derived from the injected monotonic clock. The list is bounded:
    expired entries are pruned first, then the oldest entries are evicted.
    """

    def __init__(
        self,
        *,
        limit: int = 50,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit < 1:
            raise ValueError("Notification limit must be at least 1")
        self._limit = limit
        self._clock = clock
        self._entries: list[Notification] = []
        self._ids = itertools.count(1)

    @property
    def limit(self) -> int:
        return self._limit

    @limit.setter
    def limit(self, value: int) -> None:
        if value < 1:
            raise ValueError("Notification limit must be at least 1")
        self._limit = value
        self._prune(self._clock())

    def notify(
        self, title: str, message: str, severity: Severity | str = Severity.INFO
    ) -> Notification:
        now = self._clock()
        notification = Notification(
            id=next(self._ids),
            title=title,
            message=message,
            severity=Severity(severity),
            created_at=now,
        )
        self._entries.append(notification)
        self._prune(now)
        logger.debug("Notification [%s] %s: %s", notification.severity.value, title, message)
        return notification

    def active(self) -> list[Notification]:
        """Return every notification not yet removed, oldest first."""

        now = self._clock()
        self._prune(now)
        return list(self._entries)

    def to_payload(self) -> list[dict[str, object]]:
        now = self._clock()
        self._prune(now)
        return [entry.to_payload(now) for entry in self._entries]

    def _prune(self, now: float) -> None:
        self._entries = [
            entry
            for entry in self._entries
            if entry.phase(now) is not NotificationPhase.REMOVED
        ]
        overflow = len(self._entries) - self._limit
        if overflow > 0:
            del self._entries[:overflow]
