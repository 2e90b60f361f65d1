"""Gemini provider implementation using the google-genai SDK."""

from google import genai
from google.genai import types

from contentgen.core.logging import get_logger
from contentgen.llm.config import LLMConfig
from contentgen.llm.providers.base import BaseLLMProvider
from contentgen.llm.providers.types import GenerateConfig, LLMResponse

logger = get_logger().bind(module="gemini_provider")

DEFAULT_MODEL = "gemini-1.5-pro"


class GeminiConfig(LLMConfig):
    """Configuration for Gemini provider."""

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


class GeminiProvider(BaseLLMProvider[genai.Client, GeminiConfig]):
    """Gemini provider implementation."""

    name = "gemini"

    @property
    def environment_key(self) -> str:
        """Get the environment variable name for the API key."""
        return "GEMINI_API_KEY"

    def _create_client(self) -> genai.Client:
        return genai.Client(
            api_key=self.api_key,
            # HttpOptions takes milliseconds
            http_options=types.HttpOptions(timeout=int(self.config.timeout * 1000)),
        )

    async def _complete(self, prompt: str, config: GenerateConfig) -> LLMResponse:
        response = await self.model.aio.models.generate_content(
            model=self.config.model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                max_output_tokens=config.max_tokens or 4000,
                temperature=(
                    config.temperature
                    if config.temperature is not None
                    else self.config.temperature
                ),
            ),
        )

        content = response.text or ""
        logger.info(
            "gemini_response",
            model=self.config.model_name,
            content_length=len(content),
        )
        if not content.strip():
            raise self._empty_response_error()

        usage: dict[str, int] = {}
        metadata = response.usage_metadata
        if metadata is not None and metadata.total_token_count is not None:
            usage["total_tokens"] = int(metadata.total_token_count)
        return LLMResponse(text=content, model=self.config.model_name, usage=usage)
