"""LLM configuration."""


class LLMConfig:
    """Configuration shared by every provider adapter.

    Generation options on a request override ``temperature`` and
    ``max_tokens``; the values here are the adapter defaults.
    """

    def __init__(
        self,
        model_name: str,
        temperature: float = 0.7,
        max_tokens: int | None = 4000,
        timeout: float = 120.0,
    ) -> None:
        """Initialize LLM config.

        Args:
            model_name: Name of the model to use
            temperature: Default sampling temperature (0-1)
            max_tokens: Default maximum tokens to generate (>0)
            timeout: Request timeout in seconds (>0)

        Raises:
            ValueError: If any parameters are invalid
        """
        if not model_name or model_name.isspace():
            raise ValueError("model_name is required")
        if max_tokens is not None and max_tokens <= 0:
            raise ValueError("Max tokens must be positive")
        if not 0 <= temperature <= 1:
            raise ValueError("Temperature must be between 0 and 1")
        if timeout <= 0:
            raise ValueError("Timeout must be positive")

        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
