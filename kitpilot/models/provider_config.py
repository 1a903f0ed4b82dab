"""
AI Provider Config Model
========================
Connection settings for the language-model provider.

Fields:
    provider    — "anthropic", "openai" or "custom" (OpenAI-compatible endpoint)
    api_key     — provider API key
    model       — model id; provider default when None
    base_url    — required for "custom"
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class AiProviderConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    provider: Literal["anthropic", "openai", "custom"]
    api_key: str = Field(alias="apiKey")
    model: Optional[str] = None
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
