"""
Generation service clients. Two interchangeable backends behind one async interface:
  - HttpGenerationClient: the drafting backend's /ai/generate and /ai/refine endpoints (httpx).
  - LLMClient: OpenAI or Azure OpenAI directly, configured from Config.
Both raise ServiceError on transport or server failure.
"""
import logging
from typing import Any, Callable, Protocol, Sequence

import httpx

from docpreview.config import Config
from docpreview.errors import ServiceError
from docpreview.prompts import REFINEMENT_SYSTEM_PROMPT, build_refinement_prompt

logger = logging.getLogger(__name__)

# Chat turns as sent by the drafting UI: {"role": "user" | "assistant", "content": str}
ChatHistory = Sequence[dict]


class GenerationService(Protocol):
    async def generate(self, prompt: str, history: ChatHistory = ()) -> Any: ...

    async def refine(self, current_draft: str, user_request: str) -> Any: ...


class HttpGenerationClient:
    """
    Talks to the drafting backend over HTTP. Payloads mirror the backend's AI routes:
    generate -> {"prompt", "conversation_history"}, refine -> {"current_draft", "user_request"};
    both answer {"result": "..."} or, on failure, {"error": "..."}.
    """

    GENERATE_PATH = "/ai/generate"
    REFINE_PATH = "/ai/refine"

    def __init__(
        self,
        base_url: str,
        timeout: float = 120.0,
        headers: dict | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = headers or {}
        self._transport = transport

    async def _post(self, path: str, payload: dict) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, headers=self._headers, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            msg = str(e).strip() or type(e).__name__
            logger.error(f"Generation service unreachable at {url}: {msg}")
            raise ServiceError(detail=msg) from e

        if response.is_error:
            server_message, detail = self._error_detail(response)
            logger.error(f"Generation service error {response.status_code} from {path}: {detail}")
            raise ServiceError(detail=detail, status_code=response.status_code, server_message=server_message)

        try:
            body = response.json()
        except ValueError as e:
            raise ServiceError(detail="Generation service returned a non-JSON body.",
                               status_code=response.status_code) from e
        if not isinstance(body, dict):
            raise ServiceError(detail="Generation service returned an unexpected body.",
                               status_code=response.status_code)
        return body.get("result")

    @staticmethod
    def _error_detail(response: httpx.Response) -> tuple[str | None, str | None]:
        """
        (server_message, detail). server_message comes only from a JSON error body;
        detail is that message or, for anything else (e.g. a proxy's HTML page), the raw text.
        """
        raw = response.text[:500].strip() or None
        try:
            body = response.json()
        except ValueError:
            return None, raw
        if isinstance(body, dict):
            for key in ("error", "detail", "message"):
                value = body.get(key)
                if isinstance(value, str) and value.strip():
                    return value.strip(), value.strip()
        return None, raw

    async def generate(self, prompt: str, history: ChatHistory = ()) -> Any:
        return await self._post(self.GENERATE_PATH, {"prompt": prompt, "conversation_history": list(history)})

    async def refine(self, current_draft: str, user_request: str) -> Any:
        return await self._post(self.REFINE_PATH, {"current_draft": current_draft, "user_request": user_request})


class LLMClient:
    """
    Encapsulates the async OpenAI or Azure OpenAI client settings and model.
    Model is set in __init__ from Config (dependency injection / single source of truth).
    A fresh client is opened per call: its connection pool belongs to the event loop that
    created it, and hosts such as Flask's async views run each request on a new loop.
    """

    def __init__(self, config: Config | None = None, client_factory: Callable[[], Any] | None = None):
        self._cfg = config or Config()
        self._client_factory = client_factory or self._new_client
        if self._cfg.USE_AZURE_OPENAI:
            self._model = self._cfg.AZURE_OPENAI_DEPLOYMENT
        else:
            self._model = self._cfg.OPENAI_MODEL

    def _new_client(self):
        cfg = self._cfg
        if cfg.USE_AZURE_OPENAI:
            from openai import AsyncAzureOpenAI
            return AsyncAzureOpenAI(
                azure_endpoint=cfg.AZURE_OPENAI_ENDPOINT,
                api_key=cfg.AZURE_OPENAI_API_KEY,
                api_version=cfg.AZURE_OPENAI_API_VERSION,
            )
        from openai import AsyncOpenAI
        return AsyncOpenAI(api_key=cfg.OPENAI_API_KEY, base_url=cfg.OPENAI_BASE_URL or None)

    async def _complete(self, messages: list[dict], max_tokens: int = 4096, temperature: float | None = None) -> str:
        kwargs = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            kwargs["temperature"] = temperature
        from openai import APIConnectionError, APIError
        try:
            async with self._client_factory() as client:
                response = await client.chat.completions.create(**kwargs)
        except (APIConnectionError, APIError) as e:
            msg = str(e).strip() or type(e).__name__
            if "connection" in msg.lower() or "getaddrinfo" in msg.lower():
                msg += " Check AZURE_OPENAI_ENDPOINT (or OPENAI_API_KEY) and network/VPN/DNS."
            logger.error(f"Cannot reach OpenAI/Azure: {msg}")
            raise ServiceError(detail=f"Cannot reach OpenAI/Azure: {msg}",
                               status_code=getattr(e, "status_code", None)) from e
        return response.choices[0].message.content or ""

    async def generate(self, prompt: str, history: ChatHistory = ()) -> str:
        messages = [
            {"role": turn.get("role", "user"), "content": turn.get("content", "")}
            for turn in history
        ]
        messages.append({"role": "user", "content": prompt})
        return await self._complete(messages)

    async def refine(self, current_draft: str, user_request: str) -> str:
        messages = [
            {"role": "system", "content": REFINEMENT_SYSTEM_PROMPT},
            {"role": "user", "content": build_refinement_prompt(current_draft, user_request)},
        ]
        return await self._complete(messages, max_tokens=8192, temperature=0.05)


def build_generation_client(config: Config | None = None) -> GenerationService:
    """HTTP backend when GENERATION_API_URL is set, otherwise OpenAI/Azure directly."""
    cfg = config or Config()
    if cfg.USE_HTTP_SERVICE:
        logger.info(f"Using HTTP generation service at {cfg.GENERATION_API_URL}")
        return HttpGenerationClient(cfg.GENERATION_API_URL, timeout=cfg.GENERATION_API_TIMEOUT)
    logger.info("Using OpenAI/Azure generation client")
    return LLMClient(cfg)
