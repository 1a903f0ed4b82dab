"""
AI Client Tests
===============
Requests are served by httpx.MockTransport; nothing leaves the process.
"""
import asyncio
import json

import httpx
import pytest

from kitpilot.core.exceptions import AIRequestError
from kitpilot.llm.client import (
    ANTHROPIC_URL,
    ANTHROPIC_VERSION,
    DEFAULT_MODELS,
    OPENAI_URL,
    AIClient,
    chat_completions_url,
)
from kitpilot.models.conversation import ChatMessage
from kitpilot.models.provider_config import AiProviderConfig

HISTORY = [
    ChatMessage(role="user", content="add a cap"),
    ChatMessage(role="assistant", content="[]"),
    ChatMessage(role="user", content="now really"),
]


def _client(handler):
    return AIClient(http=httpx.AsyncClient(transport=httpx.MockTransport(handler)), max_tokens=1024)


def _send(client, provider, system="SYSTEM", messages=HISTORY):
    async def go():
        try:
            return await client.send(provider, system, messages)
        finally:
            await client.close()
    return asyncio.run(go())


def test_anthropic_request_shape_and_reply():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["headers"] = request.headers
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "content": [{"type": "text", "text": "[]"}, {"type": "text", "text": "\nNo changes."}],
            "usage": {"input_tokens": 120, "output_tokens": 8},
        })

    provider = AiProviderConfig(provider="anthropic", api_key="sk-ant")
    response = _send(_client(handler), provider)

    assert seen["url"] == ANTHROPIC_URL
    assert seen["headers"]["x-api-key"] == "sk-ant"
    assert seen["headers"]["anthropic-version"] == ANTHROPIC_VERSION
    assert seen["body"]["model"] == DEFAULT_MODELS["anthropic"]
    assert seen["body"]["max_tokens"] == 1024
    assert seen["body"]["system"] == "SYSTEM"
    assert [m["role"] for m in seen["body"]["messages"]] == ["user", "assistant", "user"]
    assert response.content == "[]\nNo changes."
    assert response.usage.input_tokens == 120
    assert response.usage.output_tokens == 8


def test_openai_puts_system_prompt_first():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "choices": [{"message": {"role": "assistant", "content": "[]"}}],
            "usage": {"prompt_tokens": 50, "completion_tokens": 2},
        })

    provider = AiProviderConfig(provider="openai", api_key="sk-oa", model="gpt-4o-mini")
    response = _send(_client(handler), provider)

    assert seen["url"] == OPENAI_URL
    assert seen["auth"] == "Bearer sk-oa"
    assert seen["body"]["model"] == "gpt-4o-mini"
    assert seen["body"]["messages"][0] == {"role": "system", "content": "SYSTEM"}
    assert len(seen["body"]["messages"]) == 4
    assert response.content == "[]"
    assert response.usage.output_tokens == 2


def test_custom_provider_uses_base_url():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    provider = AiProviderConfig(provider="custom", api_key="k", base_url="http://localhost:11434/v1/")
    response = _send(_client(handler), provider)

    assert seen["url"] == "http://localhost:11434/v1/chat/completions"
    assert response.content == "ok"
    assert response.usage is None


def test_custom_provider_without_base_url_fails():
    def handler(request):
        raise AssertionError("no request expected")

    provider = AiProviderConfig(provider="custom", api_key="k")
    with pytest.raises(AIRequestError, match="base URL"):
        _send(_client(handler), provider)


def test_error_status_carries_provider_and_body():
    def handler(request):
        return httpx.Response(529, text='{"error": "overloaded"}')

    provider = AiProviderConfig(provider="anthropic", api_key="sk-ant")
    with pytest.raises(AIRequestError) as exc:
        _send(_client(handler), provider)

    assert str(exc.value) == 'Anthropic API error (529): {"error": "overloaded"}'


def test_transport_failure_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = AiProviderConfig(provider="openai", api_key="sk-oa")
    with pytest.raises(AIRequestError, match="connection refused"):
        _send(_client(handler), provider)


@pytest.mark.parametrize("base, expected", [
    ("https://api.example.com/v1", "https://api.example.com/v1/chat/completions"),
    ("https://api.example.com/v1/", "https://api.example.com/v1/chat/completions"),
    ("https://api.example.com/v1/chat/completions", "https://api.example.com/v1/chat/completions"),
])
def test_chat_completions_url(base, expected):
    assert chat_completions_url(base) == expected
