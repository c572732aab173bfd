"""Configuration management."""

import os
from typing import Optional
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from project root
project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

# Existing environment variables take precedence over .env values
load_dotenv(dotenv_path=env_file, override=False)

PACKAGE_DATA_DIR = Path(__file__).parent.parent / "data"


class Config:
    """Application configuration.

    Provider credentials are read on every access so that keys can be
    rotated (or patched in tests) without rebuilding the config object.
    """

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    APP_URL: str = os.getenv("APP_URL", "http://localhost:3001")
    PORT: int = int(os.getenv("PORT", "3001"))

    # Chat rate limiting (requests per minute per tenant/session)
    CHAT_RATE_LIMIT_PER_MINUTE: int = int(os.getenv("CHAT_RATE_LIMIT_PER_MINUTE", "20"))

    @property
    def DATA_DIR(self) -> Path:
        return Path(os.getenv("DATA_DIR") or PACKAGE_DATA_DIR)

    # Groq
    @property
    def GROQ_API_KEY(self) -> Optional[str]:
        return os.getenv("GROQ_API_KEY")

    @property
    def GROQ_MODEL(self) -> str:
        return os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")

    # Gemini
    @property
    def GEMINI_API_KEY(self) -> Optional[str]:
        return os.getenv("GEMINI_API_KEY")

    @property
    def GEMINI_MODEL(self) -> str:
        return os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

    # Mistral
    @property
    def MISTRAL_API_KEY(self) -> Optional[str]:
        return os.getenv("MISTRAL_API_KEY")

    @property
    def MISTRAL_MODEL(self) -> str:
        return os.getenv("MISTRAL_MODEL", "mistral-small-latest")

    # OpenRouter
    @property
    def OPENROUTER_API_KEY(self) -> Optional[str]:
        return os.getenv("OPENROUTER_API_KEY")

    @property
    def OPENROUTER_MODEL(self) -> str:
        return os.getenv("OPENROUTER_MODEL", "x-ai/grok-4.1-fast:free")

    # Comma-separated provider order, e.g. "gemini,groq"
    @property
    def LLM_PRIORITY(self) -> Optional[str]:
        return os.getenv("LLM_PRIORITY")


config = Config()
