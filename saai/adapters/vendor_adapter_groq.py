"""Groq vendor adapter (OpenAI-compatible endpoint)."""

from saai.adapters.vendor_adapter_base import OpenAICompatibleAdapter
from saai.infra.config import config


class GroqAdapter(OpenAICompatibleAdapter):
    name = "groq"
    api_key_env = "GROQ_API_KEY"
    base_url = "https://api.groq.com/openai/v1"

    @property
    def model(self) -> str:
        return config.GROQ_MODEL
