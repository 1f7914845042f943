"""User-facing notifications.

Flows report outcomes through a :class:`Notifier` instead of raising: a front
end maps these to toasts, the CLI to console lines, tests to a recorded list.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Literal

logger = logging.getLogger(__name__)

Level = Literal["success", "error", "info"]


class Notifier(ABC):
    """Destination for user-facing messages."""

    @abstractmethod
    def notify(self, level: Level, message: str) -> None: ...

    def success(self, message: str) -> None:
        self.notify("success", message)

    def error(self, message: str) -> None:
        self.notify("error", message)

    def info(self, message: str) -> None:
        self.notify("info", message)


class LoggingNotifier(Notifier):
    """Writes notifications to a logger. The default when none is supplied."""

    def __init__(self, name: str = "customops.notifications") -> None:
        self._logger = logging.getLogger(name)

    def notify(self, level: Level, message: str) -> None:
        if level == "error":
            self._logger.error("%s", message)
        else:
            self._logger.info("%s", message)


@dataclass
class Notification:
    level: Level
    message: str


@dataclass
class RecordingNotifier(Notifier):
    """Keeps every notification in memory.

    Example:
        ```python
        notifier = RecordingNotifier()
        controller = WizardController(definition, notifier=notifier)
        await controller.advance()
        assert notifier.errors == ["Please fill in required fields: first_name"]
        ```
    """

    notifications: List[Notification] = field(default_factory=list)

    def notify(self, level: Level, message: str) -> None:
        self.notifications.append(Notification(level, message))

    def messages(self, level: Level) -> List[str]:
        return [n.message for n in self.notifications if n.level == level]

    @property
    def errors(self) -> List[str]:
        return self.messages("error")

    @property
    def successes(self) -> List[str]:
        return self.messages("success")

    def clear(self) -> None:
        self.notifications.clear()
