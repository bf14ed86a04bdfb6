"""Toast-style notification channel.

Every terminal failure (and the offline precondition) is published here
so the presentation layer can show it, and logged on the way through.
"""

import logging
from collections import deque
from enum import Enum

from pydantic import BaseModel

from allergen_scanner.core.exceptions import APIError

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    """Notification severity."""

    INFO = "info"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """A single user-facing notification."""

    severity: Severity
    title: str
    message: str


class NotificationChannel:
    """
    Bounded in-memory notification queue.

    Usage:
        channel = NotificationChannel()
        channel.notify(Severity.DESTRUCTIVE, "Analysis Failed", "Could not analyze the food item.")
        pending = channel.drain()
    """

    def __init__(self, backlog: int = 50) -> None:
        self._pending: deque[Notification] = deque(maxlen=backlog)

    def notify(self, severity: Severity, title: str, message: str) -> Notification:
        """Publish a notification."""
        notification = Notification(severity=severity, title=title, message=message)
        level = logging.WARNING if severity == Severity.DESTRUCTIVE else logging.INFO
        logger.log(level, f"Notification [{severity.value}] {title}: {message}")
        self._pending.append(notification)
        return notification

    def notify_error(self, error: APIError) -> Notification:
        """Publish a destructive notification for an error."""
        return self.notify(Severity.DESTRUCTIVE, error.title, error.message)

    def pending(self) -> list[Notification]:
        """Notifications not yet drained, oldest first."""
        return list(self._pending)

    def drain(self) -> list[Notification]:
        """Return and remove all pending notifications."""
        drained = list(self._pending)
        self._pending.clear()
        return drained
