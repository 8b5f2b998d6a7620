"""
Verification gate: the user's explicit confirmation that the details are correct.
Nothing in the workflow flips it on its own, including later edits, refinements or service errors.
"""
import logging
from typing import Callable

from docpreview.errors import VerificationRequiredError
from docpreview.notifications import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)

VERIFIED_NOTICE = "Document details verified!"


class VerificationGate:

    def __init__(self, notifier: Notifier | None = None):
        self._verified = False
        self._notifier = notifier or LoggingNotifier()
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def verified(self) -> bool:
        return self._verified

    def set_verified(self, value: bool) -> None:
        value = bool(value)
        changed = value != self._verified
        self._verified = value
        if not changed:
            return
        logger.info(f"Verification set to {value}")
        if value:
            self._notifier.success(VERIFIED_NOTICE)
        for listener in list(self._listeners):
            listener(value)

    def require_verified(self) -> None:
        if not self._verified:
            raise VerificationRequiredError()

    def subscribe(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)
