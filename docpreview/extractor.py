"""
Extract key details (parties, dates, amounts, governing law) from a draft by asking the
generation service for a JSON object, then parsing whatever comes back:
  1. strict JSON object in the response
  2. "Key: Value" / "Key - Value" lines
  3. a minimal fallback built from the document itself
Parse problems never raise; only service failures do (ExtractionServiceError).
Uses DetailExtractor class (OOP).
"""
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from docpreview.details import DOCUMENT_TYPE_KEY, DEFAULT_DOCUMENT_TYPE, DetailStore
from docpreview.errors import ExtractionServiceError, ServiceError
from docpreview.llm_client import GenerationService
from docpreview.prompts import build_detail_extraction_prompt
from docpreview.utils import BusyToken, JsonParser

logger = logging.getLogger(__name__)

CONTENT_PREVIEW_KEY = "Content Preview"
CONTENT_PREVIEW_CHARS = 100

_COLON_LINE = re.compile(r"^([^:]+):\s*(.+)$")
_HYPHEN_LINE = re.compile(r"^([^-]+)-\s*(.+)$")


class ExtractionStage(str, Enum):
    STRICT_JSON = "strict_json"
    HEURISTIC_LINES = "heuristic_lines"
    FALLBACK = "fallback"


@dataclass
class ExtractionOutcome:
    stage: ExtractionStage
    details: dict[str, str] = field(default_factory=dict)


def _to_detail_value(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def parse_json_details(response: str) -> dict[str, str] | None:
    data = JsonParser.extract_object(response)
    if data is None:
        return None
    return {str(k): _to_detail_value(v) for k, v in data.items()}


def parse_details_from_text(text: str) -> dict[str, str]:
    """Collect "Key: Value" lines (falling back to "Key - Value"); blank keys or values are dropped."""
    details = {}
    for line in text.split("\n"):
        match = _COLON_LINE.match(line) or _HYPHEN_LINE.match(line)
        if not match:
            continue
        key = match.group(1).strip()
        value = match.group(2).strip()
        if key and value:
            details[key] = value
    return details


def fallback_details(document_content: str) -> dict[str, str]:
    return {
        DOCUMENT_TYPE_KEY: DEFAULT_DOCUMENT_TYPE,
        CONTENT_PREVIEW_KEY: document_content[:CONTENT_PREVIEW_CHARS] + "...",
    }


def parse_extraction_response(response, document_content: str) -> ExtractionOutcome:
    """Run the parse stages in order and report which one produced the details."""
    if isinstance(response, str):
        details = parse_json_details(response)
        if details is not None:
            return ExtractionOutcome(ExtractionStage.STRICT_JSON, details)
        logger.warning("No parseable JSON object in extraction response; trying line parsing")
        details = parse_details_from_text(response)
        if details:
            return ExtractionOutcome(ExtractionStage.HEURISTIC_LINES, details)
        logger.warning("Line parsing found no details; using content preview fallback")
    else:
        logger.warning(f"Extraction response is not text ({type(response).__name__}); using content preview fallback")
    return ExtractionOutcome(ExtractionStage.FALLBACK, fallback_details(document_content))


class DetailExtractor:
    """
    Asks the generation service for the document's key details and merges them into a DetailStore.
    One extraction at a time; a call made while another is running is ignored.
    """

    def __init__(self, service: GenerationService, store: DetailStore):
        self._service = service
        self._store = store
        self._token = BusyToken("extraction")

    @property
    def is_extracting(self) -> bool:
        return self._token.busy

    async def extract_details(self, document_content: str | None) -> ExtractionOutcome | None:
        """
        Returns the outcome that was merged, or None when nothing ran
        (empty content, or an extraction already in flight).
        """
        if not document_content:
            logger.debug("Skipping extraction: document has no content")
            return None
        if not self._token.acquire():
            logger.warning("Extraction already in progress; ignoring request")
            return None
        try:
            prompt = build_detail_extraction_prompt(document_content)
            try:
                response = await self._service.generate(prompt, [])
            except ServiceError as e:
                raise ExtractionServiceError.wrap(e) from e
            outcome = parse_extraction_response(response, document_content)
            self._store.merge(outcome.details)
            logger.info(f"Extracted {len(outcome.details)} detail(s) via {outcome.stage.value}")
            return outcome
        finally:
            self._token.release()
