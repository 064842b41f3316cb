# src/studyflow/core/notify.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

logger = logging.getLogger(__name__)


class Severity(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Notification:
    """User-visible outcome of an action. Delivery is up to the Notifier."""

    title: str
    description: str
    severity: Severity = Severity.INFO


def info(title: str, description: str) -> Notification:
    return Notification(title=title, description=description, severity=Severity.INFO)


def success(description: str, title: str = "Success") -> Notification:
    return Notification(title=title, description=description, severity=Severity.SUCCESS)


def error(description: str, title: str = "Error") -> Notification:
    return Notification(title=title, description=description, severity=Severity.ERROR)


class LoggingNotifier:
    """Fallback notifier: routes notifications into the log (no UI attached)."""

    def notify(self, notification: Notification) -> None:
        level = logging.WARNING if notification.severity == Severity.ERROR else logging.INFO
        logger.log(level, "%s: %s", notification.title, notification.description)
