"""
AI Provider Configuration
=========================
Persists and selects the language-model provider.

File: <KITPILOT_HOME>/ai-config.json
    {"provider": "anthropic", "apiKey": "...", "model": "...", "baseUrl": null}

Selection Strategy:
    1. Use the saved config when present and valid.
    2. Otherwise run the interactive setup (provider → key → base URL for
       custom endpoints → model, defaulting to the provider's model).
    3. A cancelled setup yields None; callers end before touching the project.
"""
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from kitpilot.core import config
from kitpilot.llm.client import DEFAULT_MODELS
from kitpilot.models.provider_config import AiProviderConfig
from kitpilot.ui.prompter import Prompter

logger = logging.getLogger(__name__)

PROVIDER_CHOICES = [
    ("anthropic", "Claude (Anthropic) - recommended"),
    ("openai", "GPT (OpenAI)"),
    ("custom", "Custom OpenAI-compatible endpoint"),
]

PROVIDER_NAMES = {"anthropic": "Claude", "openai": "GPT", "custom": "Custom"}


def ai_config_path() -> Path:
    return config.KITPILOT_HOME / "ai-config.json"


def load_ai_config() -> Optional[AiProviderConfig]:
    """Return the saved provider config, or None if absent or invalid."""
    path = ai_config_path()
    if not path.is_file():
        return None
    try:
        return AiProviderConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning("Ignoring invalid AI config %s: %s", path, e)
        return None


def save_ai_config(provider_config: AiProviderConfig) -> None:
    path = ai_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = provider_config.model_dump(by_alias=True, exclude_none=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def clear_ai_config() -> None:
    path = ai_config_path()
    if path.exists():
        path.unlink()


def run_ai_setup(prompter: Prompter) -> Optional[AiProviderConfig]:
    """
    Interactively choose and save a provider.

    Returns
    -------
    AiProviderConfig or None
        None when any step is cancelled or a required answer is empty.
    """
    provider = prompter.select("Which AI provider do you want to use?", PROVIDER_CHOICES)
    if provider is None:
        return None

    api_key = prompter.ask("Enter your API key", password=True)
    if not api_key or not api_key.strip():
        logger.error("API key is required")
        return None

    base_url = None
    if provider == "custom":
        base_url = prompter.ask("Enter the API base URL (e.g. https://api.example.com/v1)")
        if not base_url or not base_url.strip():
            logger.error("Base URL is required for a custom provider")
            return None
        base_url = base_url.strip()

    default_model = DEFAULT_MODELS.get(provider, "")
    model = prompter.ask("Which model? (press Enter for default)", default=default_model)
    if model is None:
        return None

    provider_config = AiProviderConfig(
        provider=provider,
        api_key=api_key.strip(),
        model=model.strip() or default_model or None,
        base_url=base_url,
    )
    save_ai_config(provider_config)
    logger.info(
        "AI provider configured: %s (%s)",
        PROVIDER_NAMES.get(provider, provider), provider_config.model or "default",
    )
    return provider_config


def ensure_ai_config(prompter: Prompter) -> Optional[AiProviderConfig]:
    """Load the saved provider config, running setup inline when missing."""
    provider_config = load_ai_config()
    if provider_config is not None:
        return provider_config
    logger.info("No AI provider configured. Let's set one up.")
    return run_ai_setup(prompter)
