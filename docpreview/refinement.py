"""
Refine a draft from a natural-language instruction ("change the date to December 1, 2024",
"add a clause about..."). The service returns the whole revised document, which replaces the
draft in full. One refinement at a time.
Uses RefinementController class (OOP).
"""
import logging

from docpreview.errors import RefinementServiceError, ServiceError
from docpreview.llm_client import GenerationService
from docpreview.utils import BusyToken

logger = logging.getLogger(__name__)


class RefinementController:
    """
    Sends (current draft, instruction) to the generation service.
    The busy token is taken on entry and released on every exit path; a call made while
    a refinement is in flight is ignored.
    """

    def __init__(self, service: GenerationService):
        self._service = service
        self._token = BusyToken("refinement")

    @property
    def is_busy(self) -> bool:
        return self._token.busy

    async def refine(self, current_draft: str | None, instruction: str | None) -> str | None:
        """
        Return the refined document text, or None when nothing was sent
        (blank instruction, or another refinement still running).
        """
        if not (instruction or "").strip():
            logger.debug("Skipping refinement: empty instruction")
            return None
        if not self._token.acquire():
            logger.warning("Refinement already in progress; ignoring request")
            return None
        try:
            try:
                refined = await self._service.refine(current_draft or "", instruction)
            except ServiceError as e:
                raise RefinementServiceError.wrap(e) from e
            if not isinstance(refined, str):
                logger.error(f"Refinement returned {type(refined).__name__} instead of text")
                raise RefinementServiceError(detail="The generation service returned no document.")
            logger.info(f"Refined draft: {len(current_draft or '')} -> {len(refined)} chars")
            return refined
        finally:
            self._token.release()
