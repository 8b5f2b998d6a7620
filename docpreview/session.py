"""
Document preview session: the state behind one "preview, verify, download" screen.
Owns the detail record, the verification gate and the single-flight extraction/refinement,
and talks to the host only through on_update / on_download and change listeners.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from docpreview.categorizer import CATEGORY_LABELS, categorize
from docpreview.details import DetailStore
from docpreview.errors import ExtractionServiceError, RefinementServiceError
from docpreview.exporter import EXPORT_FORMATS
from docpreview.extractor import DetailExtractor, ExtractionOutcome
from docpreview.llm_client import GenerationService
from docpreview.notifications import LoggingNotifier, Notifier
from docpreview.refinement import RefinementController
from docpreview.verification import VerificationGate

logger = logging.getLogger(__name__)

DEFAULT_FILE_NAME = "legal_document"
DEFAULT_FILE_FORMAT = "docx"

# Events passed to session listeners.
EVENT_DETAILS = "details"
EVENT_VERIFIED = "verified"
EVENT_CONTENT = "content"
EVENT_BUSY = "busy"

UpdateHook = Callable[[str], Any]
DownloadHook = Callable[[str, str, str], Any]
SessionListener = Callable[[str, Any], None]


@dataclass
class Document:
    content: str = ""
    formatted_content: str | None = None
    document_type: str | None = None
    details: dict | None = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def from_dict(cls, data: dict) -> "Document":
        kwargs = {
            "content": data.get("content") or "",
            "formatted_content": data.get("formatted_content"),
            "document_type": data.get("document_type"),
            "details": data.get("details") if isinstance(data.get("details"), dict) else None,
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(**kwargs)

    @property
    def display_content(self) -> str:
        return self.formatted_content or self.content or ""


class DocumentPreviewSession:
    """
    Created when a document is opened for preview and dropped when the preview closes.
    Nothing here is persisted; the host persists content through on_update.
    """

    def __init__(
        self,
        document: Document,
        service: GenerationService,
        on_update: UpdateHook | None = None,
        on_download: DownloadHook | None = None,
        notifier: Notifier | None = None,
    ):
        self.document = document
        self._on_update = on_update
        self._on_download = on_download
        self._notifier = notifier or LoggingNotifier()
        self._listeners: list[SessionListener] = []

        self.details = DetailStore(document.document_type, document.details)
        self.gate = VerificationGate(self._notifier)
        self._extractor = DetailExtractor(service, self.details)
        self._refiner = RefinementController(service)

        self.edit_mode = False
        self.edited_content = document.content or ""
        self.refinement_request = ""
        self.file_name = DEFAULT_FILE_NAME
        self._file_format = DEFAULT_FILE_FORMAT

        self.details.subscribe(lambda snapshot: self._emit(EVENT_DETAILS, snapshot))
        self.gate.subscribe(lambda verified: self._emit(EVENT_VERIFIED, verified))

    # -- listeners -----------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, payload: Any) -> None:
        for listener in list(self._listeners):
            listener(event, payload)

    # -- content -------------------------------------------------------------

    @property
    def current_content(self) -> str:
        """Authoritative draft text: the document's content, or the edit buffer when that is empty."""
        return self.document.content or self.edited_content

    def toggle_edit_mode(self) -> bool:
        self.edit_mode = not self.edit_mode
        return self.edit_mode

    def save_edit(self, content: str | None = None) -> str:
        """Make the edit buffer the document content and hand it to the host."""
        if content is not None:
            self.edited_content = content
        self._replace_content(self.edited_content)
        self.edit_mode = False
        self._notifier.success("Document updated successfully!")
        return self.document.content

    def _replace_content(self, content: str) -> None:
        self.document.content = content
        self.edited_content = content
        if self._on_update is not None:
            self._on_update(content)
        self._emit(EVENT_CONTENT, content)

    # -- details -------------------------------------------------------------

    def set_detail(self, key: str, value: str) -> None:
        self.details.set_detail(key, value)

    def categorized_details(self) -> dict[str, dict[str, str]]:
        return categorize(self.details.snapshot())

    @property
    def is_extracting(self) -> bool:
        return self._extractor.is_extracting

    async def extract_details(self) -> ExtractionOutcome | None:
        """Fill the detail record from the document content. Service failures are re-raised after a notice."""
        if not self.document.content:
            return None
        self._emit(EVENT_BUSY, {"extracting": True})
        try:
            outcome = await self._extractor.extract_details(self.document.content)
        except ExtractionServiceError as e:
            logger.error(f"Failed to extract details for document {self.document.id}: {e.detail or e.message}")
            self._notifier.error(e.message)
            raise
        finally:
            self._emit(EVENT_BUSY, {"extracting": self.is_extracting})
        if outcome is not None:
            self._notifier.success("Document details extracted successfully!")
        return outcome

    # -- refinement ----------------------------------------------------------

    @property
    def is_refining(self) -> bool:
        return self._refiner.is_busy

    async def refine(self, instruction: str | None = None) -> str | None:
        """
        Apply an instruction (or the stored refinement_request) to the current draft.
        On success the result replaces the content in full and the request is cleared.
        A call made while another refinement is running is ignored and leaves the stored request alone.
        """
        if self.is_refining:
            logger.warning("Refinement already in progress; ignoring request")
            return None
        if instruction is not None:
            self.refinement_request = instruction
        self._emit(EVENT_BUSY, {"refining": True})
        try:
            refined = await self._refiner.refine(self.current_content, self.refinement_request)
        except RefinementServiceError as e:
            logger.error(f"Failed to refine document {self.document.id}: {e.detail or e.message}")
            self._notifier.error(e.message)
            raise
        finally:
            self._emit(EVENT_BUSY, {"refining": self.is_refining})
        if refined is None:
            return None
        self._replace_content(refined)
        self.refinement_request = ""
        self._notifier.success("Document refined successfully!")
        return refined

    # -- verification & download --------------------------------------------

    @property
    def verified(self) -> bool:
        return self.gate.verified

    def set_verified(self, value: bool) -> None:
        self.gate.set_verified(value)

    @property
    def file_format(self) -> str:
        return self._file_format

    @file_format.setter
    def file_format(self, value: str) -> None:
        fmt = (value or "").strip().lower()
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported file format: {value!r} (expected one of {', '.join(EXPORT_FORMATS)})")
        self._file_format = fmt

    @property
    def download_filename(self) -> str:
        return f"{self.file_name}.{self.file_format}"

    @property
    def can_download(self) -> bool:
        return self.gate.verified

    def download(self) -> Any:
        """Hand the content to on_download. Refused (VerificationRequiredError) until verified."""
        self.gate.require_verified()
        filename = self.download_filename
        logger.info(f"Downloading document {self.document.id} as {filename}")
        if self._on_download is None:
            return None
        return self._on_download(self.current_content, self.file_format, filename)

    # -- host view -----------------------------------------------------------

    def state(self) -> dict:
        details = self.details.snapshot()
        categories = categorize(details)
        return {
            "document_id": self.document.id,
            "content": self.current_content,
            "display_content": self.document.formatted_content or self.current_content,
            "edit_mode": self.edit_mode,
            "document_type": self.details.document_type,
            "details": details,
            "categories": [
                {"category": name, "label": CATEGORY_LABELS[name], "details": bucket}
                for name, bucket in categories.items()
            ],
            "verified": self.verified,
            "can_download": self.can_download,
            "file_name": self.file_name,
            "file_format": self.file_format,
            "is_extracting": self.is_extracting,
            "is_refining": self.is_refining,
            "refinement_request": self.refinement_request,
        }
