"""Type definitions for LLM providers."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator


@dataclass
class GenerateConfig:
    """Per-request generation options.

    Both fields are advisory; a provider falls back to its own configured
    defaults for anything left unset.
    """

    max_tokens: int | None = None
    temperature: float | None = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.temperature is not None and not 0 <= self.temperature <= 1:
            raise ValueError("Temperature must be between 0 and 1")
        if self.max_tokens is not None and self.max_tokens < 1:
            raise ValueError("Max tokens must be positive")


class LLMResponse(BaseModel):
    """Standard response format for LLM generations."""

    text: str = Field(description="Generated text content")
    model: str = Field(description="Name of the model used")
    usage: dict[str, int] = Field(
        default_factory=dict, description="Token usage statistics"
    )

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        """Validate text field."""
        if not v or v.isspace():
            raise ValueError("Response text cannot be empty")
        return v

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Validate model field."""
        if not v or v.isspace():
            raise ValueError("Model name cannot be empty")
        return v

    @field_validator("usage", mode="before")
    @classmethod
    def validate_usage(cls, v: dict[str, Any] | None) -> dict[str, int]:
        """Drop missing counters and reject negative ones."""
        result: dict[str, int] = {}
        for key, value in (v or {}).items():
            if value is None:
                continue
            if not isinstance(value, int | float) or float(value) != int(value):
                raise ValueError("Usage values must be integers")
            if value < 0:
                raise ValueError("Usage values must be non-negative")
            result[key] = int(value)
        return result

    @property
    def content(self) -> str:
        """Get the generated text content."""
        return self.text

    @property
    def tokens_used(self) -> int | None:
        """Total tokens billed for the call, when the backend reported it."""
        return self.usage.get("total_tokens")

    def __str__(self) -> str:
        """String representation of the response."""
        return self.text
