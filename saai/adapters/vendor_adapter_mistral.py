"""Mistral vendor adapter.

Mistral's chat endpoint is OpenAI-compatible, but it sometimes returns
tool arguments as an object rather than a JSON string; parse_tool_arguments
accepts both.
"""

from saai.adapters.vendor_adapter_base import OpenAICompatibleAdapter
from saai.infra.config import config


class MistralAdapter(OpenAICompatibleAdapter):
    name = "mistral"
    api_key_env = "MISTRAL_API_KEY"
    base_url = "https://api.mistral.ai/v1"

    @property
    def model(self) -> str:
        return config.MISTRAL_MODEL
