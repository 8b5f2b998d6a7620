"""
User-facing notices (success / error). The host decides how to show them; the default just logs.
"""
import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LoggingNotifier:
    def success(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)


class CollectingNotifier:
    """Keeps notices in order so a host (e.g. the HTTP surface) can return them with the response."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def drain(self) -> list[dict]:
        out = [{"level": level, "message": message} for level, message in self.messages]
        self.messages.clear()
        return out
