"""Mock LLM providers for testing."""

import asyncio

from contentgen.llm.config import LLMConfig
from contentgen.llm.providers.base import BaseLLMProvider
from contentgen.llm.providers.types import GenerateConfig, LLMResponse

Outcome = str | Exception


class MockProvider(BaseLLMProvider[None, LLMConfig]):
    """Mock provider with scripted responses.

    ``rules`` maps a substring of the prompt to either the text to return or
    an exception to raise; the first matching rule wins, otherwise
    ``default`` is returned.
    """

    name = "mock"

    def __init__(
        self,
        default: Outcome = "<h1>Test response</h1>",
        rules: dict[str, Outcome] | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(LLMConfig(model_name="test-model"), api_key="test-key")
        self.default = default
        self.rules = rules or {}
        self.delay = delay
        self.prompts: list[str] = []
        self.configs: list[GenerateConfig] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def environment_key(self) -> str:
        """Mock environment key."""
        return "TEST_API_KEY"

    def _create_client(self) -> None:
        return None

    async def _complete(self, prompt: str, config: GenerateConfig) -> LLMResponse:
        self.prompts.append(prompt)
        self.configs.append(config)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = next(
                (value for key, value in self.rules.items() if key in prompt),
                self.default,
            )
        finally:
            self.in_flight -= 1

        if isinstance(outcome, Exception):
            raise outcome
        if not outcome.strip():
            raise self._empty_response_error()
        return LLMResponse(
            text=outcome,
            model=self.model_name,
            usage={"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        )


class ErrorProvider(MockProvider):
    """Mock provider that always fails."""

    def __init__(self, message: str = "Test error") -> None:
        super().__init__(default=ValueError(message))
