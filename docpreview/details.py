"""
Detail record store: the editable key/value facts shown for verification.
Seeded with defaults, overlaid by the document's own details, then by extraction results.
"""
import logging
import threading
from typing import Callable

from docpreview.errors import ImmutableDetailError

logger = logging.getLogger(__name__)

DOCUMENT_TYPE_KEY = "Document Type"
DEFAULT_DOCUMENT_TYPE = "Legal Document"

# Placeholder values shown until the user edits them or extraction replaces them.
DEFAULT_DETAILS = {
    "Party 1 Name": "John Smith",
    "Party 2 Name": "Jane Doe",
    "Effective Date": "2024-01-01",
    "Property Address": "123 Main Street",
    "Consideration": "$100,000",
    "Governing Law": "State of California",
}

DetailListener = Callable[[dict], None]


def default_details(document_type: str | None = None) -> dict[str, str]:
    details = {DOCUMENT_TYPE_KEY: document_type or DEFAULT_DOCUMENT_TYPE}
    details.update(DEFAULT_DETAILS)
    return details


class DetailStore:
    """
    Owns the ordered detail record for one preview session.
    Mutations hold a lock so a merge and a manual edit never interleave with a read.
    """

    def __init__(self, document_type: str | None = None, details: dict | None = None):
        self._lock = threading.RLock()
        self._details: dict[str, str] = {}
        self._listeners: list[DetailListener] = []
        self.seed(document_type, details)

    def seed(self, document_type: str | None = None, details: dict | None = None) -> None:
        """Reset to the defaults, then overlay details already present on the document."""
        with self._lock:
            self._details = default_details(document_type)
            for key, value in (details or {}).items():
                self._details[str(key)] = "" if value is None else str(value)
        self._notify()

    def set_detail(self, key: str, value: str) -> None:
        """Apply a user edit. Document Type is detected, never typed in."""
        if key == DOCUMENT_TYPE_KEY:
            raise ImmutableDetailError("Document type is automatically detected and cannot be changed")
        with self._lock:
            self._details[key] = value
        self._notify()

    def merge(self, details: dict[str, str]) -> None:
        """Overwrite keys present in details and add new ones; other keys stay as they are."""
        if not details:
            return
        with self._lock:
            self._details.update(details)
        logger.debug(f"Merged {len(details)} detail(s): {list(details)}")
        self._notify()

    def snapshot(self) -> dict[str, str]:
        with self._lock:
            return dict(self._details)

    def get(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            return self._details.get(key, default)

    @property
    def document_type(self) -> str:
        return self.get(DOCUMENT_TYPE_KEY) or DEFAULT_DOCUMENT_TYPE

    def subscribe(self, listener: DetailListener) -> Callable[[], None]:
        """Register a listener called with a snapshot after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    def __len__(self) -> int:
        with self._lock:
            return len(self._details)
