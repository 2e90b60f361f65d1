"""Anthropic provider implementation using the messages API."""

from typing import Any

from anthropic import AsyncAnthropic

from contentgen.core.logging import get_logger
from contentgen.llm.config import LLMConfig
from contentgen.llm.providers.base import BaseLLMProvider
from contentgen.llm.providers.types import GenerateConfig, LLMResponse

logger = get_logger().bind(module="anthropic_provider")

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"


def _first_text_block(blocks: list[Any]) -> str:
    """Return the text of the first ``text`` block in a message content list."""
    for block in blocks:
        if getattr(block, "type", None) == "text":
            return str(getattr(block, "text", "") or "")
    return ""


class AnthropicConfig(LLMConfig):
    """Configuration for Anthropic provider."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        temperature: float = 0.7,
        max_tokens: int | None = 4000,
        timeout: float = 120.0,
    ) -> None:
        super().__init__(
            model_name=model_name,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )


class AnthropicProvider(BaseLLMProvider[AsyncAnthropic, AnthropicConfig]):
    """Anthropic provider implementation."""

    name = "anthropic"

    @property
    def environment_key(self) -> str:
        """Get the environment variable name for the API key."""
        return "ANTHROPIC_API_KEY"

    def _create_client(self) -> AsyncAnthropic:
        return AsyncAnthropic(
            api_key=self.api_key,
            timeout=self.config.timeout,
            max_retries=0,
        )

    async def _complete(self, prompt: str, config: GenerateConfig) -> LLMResponse:
        message = await self.model.messages.create(
            model=self.config.model_name,
            max_tokens=config.max_tokens or 4000,
            temperature=(
                config.temperature
                if config.temperature is not None
                else self.config.temperature
            ),
            messages=[{"role": "user", "content": prompt}],
        )

        content = _first_text_block(list(message.content))
        logger.info(
            "anthropic_response",
            model=self.config.model_name,
            stop_reason=getattr(message, "stop_reason", None),
            content_length=len(content),
        )
        if not content.strip():
            raise self._empty_response_error()

        input_tokens = int(message.usage.input_tokens or 0)
        output_tokens = int(message.usage.output_tokens or 0)
        return LLMResponse(
            text=content,
            model=self.config.model_name,
            usage={
                "prompt_tokens": input_tokens,
                "completion_tokens": output_tokens,
                "total_tokens": input_tokens + output_tokens,
            },
        )
