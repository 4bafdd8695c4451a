"""
Notification collaborators for phasekit.

User-initiated workflows report success and failure through a ``Notifier``.
Background generation never notifies.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List

import click


class NotificationVariant(str, Enum):
    DEFAULT = "default"
    SUCCESS = "success"
    DESTRUCTIVE = "destructive"


@dataclass
class Notification:
    title: str
    description: str = ""
    variant: NotificationVariant = NotificationVariant.DEFAULT
    timestamp: datetime = field(default_factory=datetime.now)


class Notifier(ABC):
    """Receives user-facing notifications."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        """Deliver a notification."""


class ClickNotifier(Notifier):
    """Echo notifications to the terminal; failures go to stderr."""

    def notify(self, notification: Notification) -> None:
        is_error = notification.variant == NotificationVariant.DESTRUCTIVE
        marker = "✗" if is_error else "✓"
        message = f"{marker} {notification.title}"
        if notification.description:
            message += f": {notification.description}"
        click.echo(message, err=is_error)


class RecordingNotifier(Notifier):
    """Keeps every notification in ``history``."""

    def __init__(self) -> None:
        self.history: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.history.append(notification)

    @property
    def errors(self) -> List[Notification]:
        return [n for n in self.history if n.variant == NotificationVariant.DESTRUCTIVE]

    def clear(self) -> None:
        self.history.clear()
