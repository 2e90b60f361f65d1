"""Base classes and types for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from contentgen.content.errors import ProviderError
from contentgen.llm.config import LLMConfig
from contentgen.llm.providers.types import GenerateConfig, LLMResponse

ModelType = TypeVar("ModelType")
ConfigType = TypeVar("ConfigType", bound=LLMConfig)

SYSTEM_PROMPT = (
    "You are a professional content writer. "
    "Always respond with the requested content directly."
)


class BaseLLMProvider(ABC, Generic[ModelType, ConfigType]):
    """Base class for LLM providers.

    All LLM providers should inherit from this class and implement
    its abstract methods. Providers make exactly one backend call per
    :meth:`generate`; retrying is the caller's decision.
    """

    #: Selector value this provider is registered under
    name: str = ""

    def __init__(self, config: ConfigType, api_key: str | None = None) -> None:
        """Initialize the LLM provider.

        Args:
            config: Provider configuration
            api_key: Credential for the backend
        """
        self.config = config
        self.model_name = config.model_name
        self._api_key = api_key
        self._client: ModelType | None = None

    @property
    @abstractmethod
    def environment_key(self) -> str:
        """The settings/environment name for the API key."""
        raise NotImplementedError

    @property
    def api_key(self) -> str | None:
        """Get the API key."""
        return self._api_key

    @property
    def model(self) -> ModelType:
        """Get or create the underlying SDK client."""
        if self._client is None:
            if not self.api_key:
                raise ProviderError("API key is required", provider=self.name)
            self._client = self._create_client()
        return self._client

    @abstractmethod
    def _create_client(self) -> ModelType:
        """Build the SDK client for this provider."""
        raise NotImplementedError

    @abstractmethod
    async def _complete(self, prompt: str, config: GenerateConfig) -> LLMResponse:
        """Run one completion against the backend."""
        raise NotImplementedError

    async def generate(
        self,
        prompt: str,
        config: GenerateConfig | None = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate content for a prompt.

        Args:
            prompt: The instruction to send
            config: Optional per-request options
            **kwargs: Ignored, accepted for call-site compatibility

        Returns:
            Response with non-empty text

        Raises:
            ProviderError: If the backend fails or returns no text
        """
        if not prompt or prompt.isspace():
            raise ProviderError("Prompt cannot be empty", provider=self.name)

        resolved = GenerateConfig(
            max_tokens=(
                config.max_tokens
                if config and config.max_tokens
                else self.config.max_tokens
            ),
            temperature=(
                config.temperature
                if config and config.temperature is not None
                else self.config.temperature
            ),
        )
        try:
            return await self._complete(prompt, resolved)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Error generating completion with {self.model_name}: {e}",
                provider=self.name,
            ) from e

    def _empty_response_error(self) -> ProviderError:
        return ProviderError(
            f"Model {self.model_name} returned empty content. "
            "Try a different model.",
            provider=self.name,
        )

    def __repr__(self) -> str:
        """String representation of the provider."""
        return f"{self.__class__.__name__}(model_name='{self.model_name}')"
