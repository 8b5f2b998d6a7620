"""
Load env (.env at project root) and expose settings for the preview workflow.
Encapsulates configuration in a Config class (OOP).
"""
import os
from pathlib import Path


class Config:
    """
    Holds generation-service, OpenAI/Azure, export and session settings.
    Single responsibility: load and expose environment-based settings.
    """

    _project_env = Path(__file__).resolve().parent.parent / ".env"

    def __init__(self, env_file: Path | None = None):
        self._load_env(env_file or self._project_env)
        self._generation_api_url = os.getenv("GENERATION_API_URL", "").strip().rstrip("/")
        self._generation_api_timeout = float(os.getenv("GENERATION_API_TIMEOUT", "120"))
        self._openai_api_key = os.getenv("OPENAI_API_KEY", "").strip()
        self._openai_model = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        self._openai_base_url = os.getenv("OPENAI_BASE_URL", "").strip()
        self._azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT", "").strip()
        self._azure_api_key = os.getenv("AZURE_OPENAI_API_KEY", "").strip()
        self._azure_api_version = os.getenv("AZURE_OPENAI_API_VERSION", "2024-12-01-preview").strip()
        self._azure_deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o-mini").strip()
        self._use_azure_openai = bool(self._azure_endpoint and self._azure_api_key)
        self._soffice_path = os.getenv("SOFFICE_PATH", "soffice").strip()
        self._session_ttl = int(os.getenv("PREVIEW_SESSION_TTL", "3600"))
        self._log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    @staticmethod
    def _load_env(env_file: Path) -> None:
        if env_file.exists():
            from dotenv import load_dotenv
            load_dotenv(env_file)

    @property
    def GENERATION_API_URL(self) -> str:
        return self._generation_api_url

    @property
    def GENERATION_API_TIMEOUT(self) -> float:
        return self._generation_api_timeout

    @property
    def OPENAI_API_KEY(self) -> str:
        return self._openai_api_key

    @property
    def OPENAI_MODEL(self) -> str:
        return self._openai_model

    @property
    def OPENAI_BASE_URL(self) -> str:
        return self._openai_base_url

    @property
    def AZURE_OPENAI_ENDPOINT(self) -> str:
        return self._azure_endpoint

    @property
    def AZURE_OPENAI_API_KEY(self) -> str:
        return self._azure_api_key

    @property
    def AZURE_OPENAI_API_VERSION(self) -> str:
        return self._azure_api_version

    @property
    def AZURE_OPENAI_DEPLOYMENT(self) -> str:
        return self._azure_deployment

    @property
    def USE_AZURE_OPENAI(self) -> bool:
        return self._use_azure_openai

    @property
    def USE_HTTP_SERVICE(self) -> bool:
        return bool(self._generation_api_url)

    @property
    def SOFFICE_PATH(self) -> str:
        return self._soffice_path

    @property
    def PREVIEW_SESSION_TTL(self) -> int:
        return self._session_ttl

    @property
    def LOG_LEVEL(self) -> str:
        return self._log_level
