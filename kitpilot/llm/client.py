"""
AI Client
=========
Unified asynchronous client for language-model providers.

Providers:
    - anthropic : Anthropic Messages API (x-api-key + anthropic-version headers)
    - openai    : OpenAI Chat Completions
    - custom    : any OpenAI-compatible endpoint; ``base_url`` is required and
                  ``/chat/completions`` is appended unless already present

Every request carries the system prompt plus the full rolling conversation
history. The client does NOT retry: callers decide whether a failed request
ends the turn (chat) or consumes an attempt (repair loop).

Errors:
    - Non-2xx responses raise AIRequestError("<Provider> API error (<status>): <body>")
    - Transport failures (timeouts, connection errors) are wrapped in AIRequestError
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from kitpilot.core import config
from kitpilot.core.exceptions import AIRequestError
from kitpilot.models.conversation import AiResponse, ChatMessage, TokenUsage
from kitpilot.models.provider_config import AiProviderConfig

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"

DEFAULT_MODELS: Dict[str, str] = {
    "anthropic": "claude-sonnet-4-5-20250929",
    "openai": "gpt-4o",
    "custom": "default",
}


def chat_completions_url(base_url: str) -> str:
    if base_url.endswith("/chat/completions"):
        return base_url
    return f"{base_url.rstrip('/')}/chat/completions"


# ---------------------------------------------------------------------------
# AI Client
# ---------------------------------------------------------------------------
class AIClient:
    """
    Async HTTP client for calling the configured provider.

    Usage:
        client = AIClient()
        response = await client.send(provider_config, system_prompt, history)
        await client.close()
    """

    def __init__(self, http: Optional[httpx.AsyncClient] = None, max_tokens: int = config.AI_MAX_TOKENS) -> None:
        self._http = http
        self.max_tokens = max_tokens

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(config.AI_REQUEST_TIMEOUT))
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def send(
        self,
        provider: AiProviderConfig,
        system_prompt: str,
        messages: List[ChatMessage],
    ) -> AiResponse:
        """
        Send the system prompt and conversation to ``provider``.

        Parameters
        ----------
        provider : AiProviderConfig
            Provider, key, model and (for custom) base URL.
        system_prompt : str
            Rules and project context.
        messages : list[ChatMessage]
            Full conversation history, oldest first.

        Returns
        -------
        AiResponse
            Reply text and token usage when the provider reports it.

        Raises
        ------
        AIRequestError
            On any non-2xx status or transport failure.
        """
        logger.debug("Sending %d message(s) to %s", len(messages), provider.provider)
        try:
            if provider.provider == "anthropic":
                return await self._call_anthropic(provider, system_prompt, messages)
            if provider.provider == "openai":
                return await self._call_openai_compatible(
                    provider, system_prompt, messages, OPENAI_URL, "OpenAI"
                )
            if provider.provider == "custom":
                if not provider.base_url:
                    raise AIRequestError("Custom provider requires a base URL")
                return await self._call_openai_compatible(
                    provider, system_prompt, messages, chat_completions_url(provider.base_url), "Custom"
                )
        except httpx.TimeoutException as e:
            raise AIRequestError(f"{provider.provider} request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise AIRequestError(f"{provider.provider} request failed: {e}") from e
        raise AIRequestError(f"Unknown AI provider: {provider.provider}")

    async def _call_anthropic(
        self,
        provider: AiProviderConfig,
        system_prompt: str,
        messages: List[ChatMessage],
    ) -> AiResponse:
        """Call the Anthropic Messages API."""
        http = await self._get_http()
        headers = {
            "Content-Type": "application/json",
            "x-api-key": provider.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        payload = {
            "model": provider.model or DEFAULT_MODELS["anthropic"],
            "max_tokens": self.max_tokens,
            "system": system_prompt,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        resp = await http.post(ANTHROPIC_URL, json=payload, headers=headers)
        data = _checked_json(resp, "Anthropic")

        blocks = data.get("content") or []
        content = "".join(
            block.get("text") or "" for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        usage = data.get("usage")
        return AiResponse(
            content=content,
            usage=TokenUsage(
                input_tokens=usage.get("input_tokens", 0),
                output_tokens=usage.get("output_tokens", 0),
            ) if isinstance(usage, dict) else None,
        )

    async def _call_openai_compatible(
        self,
        provider: AiProviderConfig,
        system_prompt: str,
        messages: List[ChatMessage],
        url: str,
        label: str,
    ) -> AiResponse:
        """Call an OpenAI-compatible Chat Completions endpoint."""
        http = await self._get_http()
        headers = {
            "Authorization": f"Bearer {provider.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": provider.model or DEFAULT_MODELS[provider.provider],
            "max_tokens": self.max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                *({"role": m.role, "content": m.content} for m in messages),
            ],
        }
        resp = await http.post(url, json=payload, headers=headers)
        data = _checked_json(resp, label)

        content = ""
        try:
            choices = data.get("choices") or []
            if choices:
                content = choices[0].get("message", {}).get("content") or ""
        except (AttributeError, TypeError):
            pass
        usage = data.get("usage")
        return AiResponse(
            content=content,
            usage=TokenUsage(
                input_tokens=usage.get("prompt_tokens", 0),
                output_tokens=usage.get("completion_tokens", 0),
            ) if isinstance(usage, dict) else None,
        )


def _checked_json(resp: httpx.Response, label: str) -> Dict[str, Any]:
    if resp.status_code < 200 or resp.status_code >= 300:
        raise AIRequestError(f"{label} API error ({resp.status_code}): {resp.text}")
    try:
        data = resp.json()
    except ValueError as e:
        raise AIRequestError(f"{label} API returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIRequestError(f"{label} API returned an unexpected payload")
    return data
