"""OpenAI provider implementation."""

from typing import Any, cast

from openai import AsyncOpenAI
from openai.types.chat.chat_completion import ChatCompletion
from openai.types.completion_usage import CompletionUsage

from contentgen.core.logging import get_logger
from contentgen.llm.config import LLMConfig
from contentgen.llm.providers.base import SYSTEM_PROMPT, BaseLLMProvider
from contentgen.llm.providers.types import GenerateConfig, LLMResponse

logger = get_logger().bind(module="openai_provider")

DEFAULT_MODEL = "gpt-4o"

# Reasoning models spend hidden "thinking" tokens from the completion budget
REASONING_TOKEN_MULTIPLIER = 4
REASONING_TOKEN_FLOOR = 16000


def is_reasoning_model(model_name: str) -> bool:
    """Check whether a model belongs to the o-series / gpt-5 reasoning family."""
    return model_name.startswith("o") or model_name.startswith("gpt-5")


def uses_completion_tokens_param(model_name: str) -> bool:
    """Check whether a model takes ``max_completion_tokens`` over ``max_tokens``."""
    return (
        is_reasoning_model(model_name)
        or model_name.startswith("gpt-4o")
        or model_name.startswith("gpt-4.1")
    )


def _validate_usage(usage: CompletionUsage | dict[str, Any] | None) -> dict[str, int]:
    """Validate and convert usage statistics.

    Args:
        usage: Raw usage statistics from API response

    Returns:
        dict[str, int]: Validated usage statistics
    """
    if usage is None:
        return {}
    if isinstance(usage, CompletionUsage):
        usage = usage.model_dump()
    return {
        "prompt_tokens": int(usage.get("prompt_tokens") or 0),
        "completion_tokens": int(usage.get("completion_tokens") or 0),
        "total_tokens": int(usage.get("total_tokens") or 0),
    }


class OpenAIConfig(LLMConfig):
    """Configuration for OpenAI provider"""

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


class OpenAIProvider(BaseLLMProvider[AsyncOpenAI, OpenAIConfig]):
    """OpenAI chat completions provider"""

    name = "openai"

    @property
    def environment_key(self) -> str:
        """Get the environment variable name for the API key."""
        return "OPENAI_API_KEY"

    def _create_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self.api_key,
            timeout=self.config.timeout,
            max_retries=0,
        )

    def _build_api_params(self, prompt: str, config: GenerateConfig) -> dict[str, Any]:
        """Build parameters for API call.

        Reasoning models take the ``developer`` role instead of ``system``,
        reject a temperature and get a raised token floor.

        Args:
            prompt: User prompt
            config: Resolved generation configuration

        Returns:
            dict[str, Any]: API parameters
        """
        model_name = self.config.model_name
        reasoning = is_reasoning_model(model_name)
        requested = config.max_tokens or 4000
        tokens = (
            max(requested * REASONING_TOKEN_MULTIPLIER, REASONING_TOKEN_FLOOR)
            if reasoning
            else requested
        )

        system_role = "developer" if reasoning else "system"
        params: dict[str, Any] = {
            "model": model_name,
            "messages": [
                {"role": system_role, "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if uses_completion_tokens_param(model_name):
            params["max_completion_tokens"] = tokens
        else:
            params["max_tokens"] = tokens
        if not reasoning:
            params["temperature"] = (
                config.temperature
                if config.temperature is not None
                else self.config.temperature
            )
        return params

    async def _complete(self, prompt: str, config: GenerateConfig) -> LLMResponse:
        params = self._build_api_params(prompt, config)
        logger.debug(
            "openai_request",
            model=params["model"],
            params={k: v for k, v in params.items() if k != "messages"},
        )

        result = cast(
            ChatCompletion, await self.model.chat.completions.create(**params)
        )

        choice = result.choices[0] if result.choices else None
        content = (choice.message.content if choice and choice.message else None) or ""
        logger.info(
            "openai_response",
            model=self.config.model_name,
            finish_reason=choice.finish_reason if choice else None,
            content_length=len(content),
        )
        if not content.strip():
            raise self._empty_response_error()

        return LLMResponse(
            text=content,
            model=self.config.model_name,
            usage=_validate_usage(result.usage),
        )
