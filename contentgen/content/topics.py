"""Blog topic suggestions from a provider."""

import json
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from contentgen.content.errors import ProviderError
from contentgen.content.models import GenerationOptions
from contentgen.content.orchestrator import BatchOrchestrator
from contentgen.content.processor import strip_code_fence
from contentgen.content.repository import ContentRepository
from contentgen.core.config import settings
from contentgen.core.logging import get_logger
from contentgen.llm.prompts import build_topic_suggestion_prompt
from contentgen.llm.providers.types import GenerateConfig

logger = get_logger().bind(module="topics")

MIN_TOPICS = 1
MAX_TOPICS = 20
TOPIC_MAX_TOKENS = 2000
TOPIC_TEMPERATURE = 0.8


class TopicSuggestionRequest(BaseModel):
    """Parameters of a topic suggestion call."""

    business_name: str = Field(min_length=1)
    count: int = 10
    account_id: str | None = None
    provider: str | None = None
    api_key: str | None = None
    model: str | None = None
    company_type: str | None = None
    city: str | None = None
    state: str | None = None
    topic_direction: str | None = None
    existing_topics: list[str] = Field(default_factory=list)


class TopicSuggestion(BaseModel):
    """One suggested topic, ready to become a content row."""

    title: str = Field(min_length=1)
    target_keywords: str | None = None
    target_audience: str | None = None


def clamp_count(count: int) -> int:
    return max(MIN_TOPICS, min(count, MAX_TOPICS))


def parse_topics(text: str, provider: str | None = None) -> list[TopicSuggestion]:
    """Parse a model's JSON array of topics.

    Raises:
        ProviderError: If the text is not a JSON array of topic objects
    """
    try:
        data: Any = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as e:
        raise ProviderError(
            "Failed to parse AI response. Please try again.", provider=provider
        ) from e
    if not isinstance(data, list):
        raise ProviderError("Response is not an array", provider=provider)

    topics = []
    for entry in data:
        if not isinstance(entry, dict):
            raise ProviderError("Topic entries must be objects", provider=provider)
        try:
            topics.append(
                TopicSuggestion(
                    title=str(entry.get("title") or "").strip(),
                    target_keywords=entry.get("targetKeywords")
                    or entry.get("target_keywords"),
                    target_audience=entry.get("targetAudience")
                    or entry.get("target_audience"),
                )
            )
        except ValidationError as e:
            raise ProviderError(
                f"Invalid topic entry: {entry}", provider=provider
            ) from e
    return topics


class TopicSuggester:
    """Asks a provider for topic ideas that avoid the account's existing titles."""

    def __init__(
        self, repository: ContentRepository, orchestrator: BatchOrchestrator
    ) -> None:
        self.repository = repository
        self.orchestrator = orchestrator

    async def suggest(self, request: TopicSuggestionRequest) -> list[TopicSuggestion]:
        """Generate up to ``MAX_TOPICS`` topic suggestions.

        Raises:
            ContentValidationError: If the provider cannot be resolved
            ProviderError: If the call fails or its output cannot be parsed
        """
        count = clamp_count(request.count)
        existing = [t.strip() for t in request.existing_topics if t and t.strip()]
        if request.account_id:
            existing.extend(
                item.title
                for item in await self.repository.list_items(request.account_id)
                if item.title.strip() and item.title not in existing
            )

        adapter = self.orchestrator.build_adapter(
            request.provider or settings.LLM_PROVIDER,
            request.api_key,
            GenerationOptions(model=request.model),
        )
        prompt = build_topic_suggestion_prompt(
            count=count,
            business_name=request.business_name,
            company_type=request.company_type,
            city=request.city,
            state=request.state,
            topic_direction=request.topic_direction,
            existing_topics=existing,
        )
        response = await adapter.generate(
            prompt,
            GenerateConfig(max_tokens=TOPIC_MAX_TOKENS, temperature=TOPIC_TEMPERATURE),
        )
        topics = parse_topics(response.text, provider=adapter.name)
        logger.info(
            "topics_suggested",
            provider=adapter.name,
            requested=count,
            returned=len(topics),
        )
        return topics
