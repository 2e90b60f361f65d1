"""LLM provider adapters and the provider factory."""

from enum import Enum
from typing import Any, Callable

from contentgen.content.errors import ContentValidationError
from contentgen.llm.config import LLMConfig
from contentgen.llm.providers.anthropic import AnthropicConfig, AnthropicProvider
from contentgen.llm.providers.base import BaseLLMProvider
from contentgen.llm.providers.gemini import GeminiConfig, GeminiProvider
from contentgen.llm.providers.openai import OpenAIConfig, OpenAIProvider
from contentgen.llm.providers.types import GenerateConfig, LLMResponse


class ProviderName(str, Enum):
    """Supported LLM backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


_REGISTRY: dict[
    ProviderName,
    tuple[type[BaseLLMProvider[Any, Any]], Callable[..., LLMConfig]],
] = {
    ProviderName.OPENAI: (OpenAIProvider, OpenAIConfig),
    ProviderName.ANTHROPIC: (AnthropicProvider, AnthropicConfig),
    ProviderName.GEMINI: (GeminiProvider, GeminiConfig),
}

ProviderFactory = Callable[..., BaseLLMProvider[Any, Any]]


def parse_provider(value: str | ProviderName) -> ProviderName:
    """Resolve a provider selector.

    Raises:
        ContentValidationError: If the selector names no supported backend
    """
    try:
        return ProviderName(value)
    except ValueError:
        supported = ", ".join(p.value for p in ProviderName)
        raise ContentValidationError(
            f"Unsupported LLM provider: {value}. Supported providers: {supported}"
        ) from None


def create_provider(
    provider: str | ProviderName,
    api_key: str,
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int | None = 4000,
    timeout: float = 120.0,
) -> BaseLLMProvider[Any, Any]:
    """Create a provider adapter for a selector and credential.

    Args:
        provider: Provider selector
        api_key: Credential for the backend
        model: Model override, the provider default when omitted
        temperature: Default sampling temperature
        max_tokens: Default completion budget
        timeout: Request timeout in seconds

    Returns:
        A configured provider adapter

    Raises:
        ContentValidationError: If the provider is unknown or the key is missing
    """
    name = parse_provider(provider)
    if not api_key:
        raise ContentValidationError(f"No {name.value} API key configured")

    provider_cls, config_cls = _REGISTRY[name]
    config_kwargs: dict[str, Any] = {
        "temperature": temperature,
        "max_tokens": max_tokens,
        "timeout": timeout,
    }
    if model:
        config_kwargs["model_name"] = model
    return provider_cls(config_cls(**config_kwargs), api_key=api_key)


__all__ = [
    "AnthropicConfig",
    "AnthropicProvider",
    "BaseLLMProvider",
    "GeminiConfig",
    "GeminiProvider",
    "GenerateConfig",
    "LLMResponse",
    "OpenAIConfig",
    "OpenAIProvider",
    "ProviderFactory",
    "ProviderName",
    "create_provider",
    "parse_provider",
]
