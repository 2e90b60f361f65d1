"""Unit tests for the provider adapters and the provider factory."""

from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai.types.chat.chat_completion import ChatCompletion

from contentgen.content.errors import ContentValidationError, ProviderError
from contentgen.llm.providers import (
    AnthropicProvider,
    GeminiProvider,
    OpenAIProvider,
    ProviderName,
    create_provider,
    parse_provider,
)
from contentgen.llm.providers.anthropic import AnthropicConfig
from contentgen.llm.providers.base import SYSTEM_PROMPT
from contentgen.llm.providers.gemini import GeminiConfig
from contentgen.llm.providers.mock import ErrorProvider, MockProvider
from contentgen.llm.providers.openai import (
    REASONING_TOKEN_FLOOR,
    OpenAIConfig,
    is_reasoning_model,
    uses_completion_tokens_param,
)
from contentgen.llm.providers.types import GenerateConfig


def chat_completion(content: str | None, usage: dict[str, int] | None = None) -> Any:
    """Build a chat completion as returned by the OpenAI SDK."""
    return ChatCompletion.model_validate(
        {
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "created": 1700000000,
            "model": "gpt-4o",
            "choices": [
                {
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {"role": "assistant", "content": content},
                }
            ],
            "usage": usage,
        }
    )


@pytest.fixture
def openai_provider() -> OpenAIProvider:
    """Create OpenAI provider with a mocked SDK client."""
    provider = OpenAIProvider(OpenAIConfig(model_name="gpt-4o"), api_key="sk-test")
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    provider._client = client
    return provider


def test_parse_provider_accepts_known_selectors() -> None:
    assert parse_provider("openai") is ProviderName.OPENAI
    assert parse_provider("anthropic") is ProviderName.ANTHROPIC
    assert parse_provider(ProviderName.GEMINI) is ProviderName.GEMINI


def test_parse_provider_rejects_unknown_selector() -> None:
    with pytest.raises(ContentValidationError, match="provider: cohere"):
        parse_provider("cohere")


@pytest.mark.parametrize(
    "name,provider_cls",
    [
        ("openai", OpenAIProvider),
        ("anthropic", AnthropicProvider),
        ("gemini", GeminiProvider),
    ],
)
def test_create_provider_returns_adapter(name: str, provider_cls: type) -> None:
    """Test the factory maps every selector to its adapter."""
    provider = create_provider(name, "key-123")
    assert isinstance(provider, provider_cls)
    assert provider.name == name
    assert provider.api_key == "key-123"


def test_create_provider_applies_model_override() -> None:
    provider = create_provider("anthropic", "key", model="claude-3-haiku", timeout=30)
    assert provider.model_name == "claude-3-haiku"
    assert provider.config.timeout == 30


def test_create_provider_requires_key() -> None:
    with pytest.raises(ContentValidationError, match="No openai API key configured"):
        create_provider("openai", "")


def test_reasoning_model_detection() -> None:
    assert is_reasoning_model("o3-mini")
    assert is_reasoning_model("gpt-5")
    assert not is_reasoning_model("gpt-4o")
    assert uses_completion_tokens_param("gpt-4o-mini")
    assert uses_completion_tokens_param("gpt-4.1")
    assert not uses_completion_tokens_param("gpt-3.5-turbo")


@pytest.mark.asyncio
async def test_openai_generate(openai_provider: OpenAIProvider) -> None:
    """Test a completion is sent with system and user messages."""
    openai_provider.model.chat.completions.create.return_value = chat_completion(
        "<h1>Hello</h1>",
        {"prompt_tokens": 12, "completion_tokens": 30, "total_tokens": 42},
    )

    response = await openai_provider.generate(
        "Write a post", GenerateConfig(max_tokens=900, temperature=0.2)
    )

    assert response.text == "<h1>Hello</h1>"
    assert response.tokens_used == 42
    params = openai_provider.model.chat.completions.create.call_args.kwargs
    assert params["model"] == "gpt-4o"
    assert params["messages"] == [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "Write a post"},
    ]
    assert params["max_completion_tokens"] == 900
    assert params["temperature"] == 0.2


@pytest.mark.asyncio
async def test_openai_reasoning_model_params() -> None:
    """Test reasoning models get the developer role and no temperature."""
    provider = OpenAIProvider(OpenAIConfig(model_name="o3-mini"), api_key="sk-test")
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=chat_completion("ok"))
    provider._client = client

    await provider.generate("Write", GenerateConfig(max_tokens=1000))

    params = client.chat.completions.create.call_args.kwargs
    assert params["messages"][0]["role"] == "developer"
    assert params["max_completion_tokens"] == REASONING_TOKEN_FLOOR
    assert "temperature" not in params


@pytest.mark.asyncio
async def test_openai_legacy_model_uses_max_tokens() -> None:
    provider = OpenAIProvider(
        OpenAIConfig(model_name="gpt-3.5-turbo", max_tokens=1500), api_key="sk-test"
    )
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=chat_completion("ok"))
    provider._client = client

    await provider.generate("Write")

    params = client.chat.completions.create.call_args.kwargs
    assert params["max_tokens"] == 1500
    assert "max_completion_tokens" not in params


@pytest.mark.asyncio
async def test_openai_empty_content_raises(openai_provider: OpenAIProvider) -> None:
    openai_provider.model.chat.completions.create.return_value = chat_completion(None)

    with pytest.raises(ProviderError, match="returned empty content"):
        await openai_provider.generate("Write a post")


@pytest.mark.asyncio
async def test_openai_sdk_error_is_wrapped(openai_provider: OpenAIProvider) -> None:
    """Test backend failures surface as ProviderError with the model name."""
    openai_provider.model.chat.completions.create.side_effect = RuntimeError(
        "connection reset"
    )

    with pytest.raises(ProviderError) as exc_info:
        await openai_provider.generate("Write a post")

    assert exc_info.value.provider == "openai"
    assert "gpt-4o" in exc_info.value.message
    assert "connection reset" in exc_info.value.message


@pytest.mark.asyncio
async def test_anthropic_generate() -> None:
    """Test the first text block is returned with combined usage."""
    provider = AnthropicProvider(
        AnthropicConfig(model_name="claude-test"), api_key="sk-ant"
    )
    message = SimpleNamespace(
        content=[
            SimpleNamespace(type="thinking", text="hmm"),
            SimpleNamespace(type="text", text="<p>Body</p>"),
        ],
        stop_reason="end_turn",
        usage=SimpleNamespace(input_tokens=20, output_tokens=80),
    )
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=message)
    provider._client = client

    response = await provider.generate("Write", GenerateConfig(max_tokens=700))

    assert response.text == "<p>Body</p>"
    assert response.usage == {
        "prompt_tokens": 20,
        "completion_tokens": 80,
        "total_tokens": 100,
    }
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["max_tokens"] == 700
    assert kwargs["messages"] == [{"role": "user", "content": "Write"}]


@pytest.mark.asyncio
async def test_anthropic_without_text_block_raises() -> None:
    provider = AnthropicProvider(AnthropicConfig(), api_key="sk-ant")
    message = SimpleNamespace(
        content=[SimpleNamespace(type="tool_use")],
        stop_reason="tool_use",
        usage=SimpleNamespace(input_tokens=1, output_tokens=0),
    )
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=message)
    provider._client = client

    with pytest.raises(ProviderError, match="returned empty content"):
        await provider.generate("Write")


@pytest.mark.asyncio
async def test_gemini_generate() -> None:
    provider = GeminiProvider(GeminiConfig(model_name="gemini-test"), api_key="gm")
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(
            text="<h2>Gemini</h2>",
            usage_metadata=SimpleNamespace(total_token_count=55),
        )
    )
    provider._client = client

    response = await provider.generate("Write", GenerateConfig(max_tokens=300))

    assert response.text == "<h2>Gemini</h2>"
    assert response.tokens_used == 55
    kwargs = client.aio.models.generate_content.call_args.kwargs
    assert kwargs["model"] == "gemini-test"
    assert kwargs["contents"] == "Write"
    assert kwargs["config"].max_output_tokens == 300


@pytest.mark.asyncio
async def test_gemini_without_usage_metadata() -> None:
    provider = GeminiProvider(GeminiConfig(), api_key="gm")
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text="text", usage_metadata=None)
    )
    provider._client = client

    response = await provider.generate("Write")

    assert response.usage == {}
    assert response.tokens_used is None


@pytest.mark.asyncio
async def test_empty_prompt_rejected() -> None:
    with pytest.raises(ProviderError, match="Prompt cannot be empty"):
        await MockProvider().generate("   ")


@pytest.mark.asyncio
async def test_missing_api_key_rejected_on_first_call() -> None:
    provider = OpenAIProvider(OpenAIConfig(), api_key=None)
    with pytest.raises(ProviderError, match="API key is required"):
        await provider.generate("Write")


@pytest.mark.asyncio
async def test_mock_provider_rules() -> None:
    """Test scripted outcomes match on prompt substrings."""
    provider = MockProvider(rules={"fail": ValueError("boom"), "alt": "<p>alt</p>"})

    assert (await provider.generate("the alt prompt")).text == "<p>alt</p>"
    assert (await provider.generate("anything")).text == "<h1>Test response</h1>"
    with pytest.raises(ProviderError, match="boom"):
        await provider.generate("please fail")
    assert len(provider.prompts) == 3


@pytest.mark.asyncio
async def test_error_provider_always_fails() -> None:
    with pytest.raises(ProviderError, match="Test error"):
        await ErrorProvider().generate("Write")
