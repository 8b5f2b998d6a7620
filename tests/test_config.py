from __future__ import annotations

import os

from docpreview.config import Config


def test_defaults(monkeypatch, tmp_path):
    for key in ("GENERATION_API_URL", "GENERATION_API_TIMEOUT", "AZURE_OPENAI_ENDPOINT",
                "AZURE_OPENAI_API_KEY", "PREVIEW_SESSION_TTL", "LOG_LEVEL", "OPENAI_MODEL"):
        monkeypatch.delenv(key, raising=False)
    cfg = Config(env_file=tmp_path / ".env")
    assert cfg.GENERATION_API_URL == ""
    assert cfg.USE_HTTP_SERVICE is False
    assert cfg.GENERATION_API_TIMEOUT == 120.0
    assert cfg.USE_AZURE_OPENAI is False
    assert cfg.OPENAI_MODEL == "gpt-4o-mini"
    assert cfg.PREVIEW_SESSION_TTL == 3600
    assert cfg.LOG_LEVEL == "INFO"


def test_env_file_is_loaded(monkeypatch, tmp_path):
    for key in ("GENERATION_API_URL", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY"):
        monkeypatch.delenv(key, raising=False)
    env = tmp_path / ".env"
    env.write_text(
        "GENERATION_API_URL=http://localhost:8000/api/\n"
        "AZURE_OPENAI_ENDPOINT=https://example.openai.azure.com\n"
        "AZURE_OPENAI_API_KEY=secret\n"
    )
    cfg = Config(env_file=env)
    assert cfg.GENERATION_API_URL == "http://localhost:8000/api"
    assert cfg.USE_HTTP_SERVICE is True
    assert cfg.USE_AZURE_OPENAI is True
    # load_dotenv writes into os.environ; undo for the other tests
    for key in ("GENERATION_API_URL", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY"):
        os.environ.pop(key, None)
